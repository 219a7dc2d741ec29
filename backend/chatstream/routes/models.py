from fastapi import APIRouter, Depends, status

from chatstream.models.model_config import ModelConfig, Provider
from chatstream.models.request import ApiKeyRequest, CustomModelRequest
from chatstream.routes.dependencies import get_catalog, get_credentials
from chatstream.services.catalog import ModelCatalog
from chatstream.services.credentials import CredentialStore
from chatstream.utils.exceptions import raise_bad_request, raise_conflict, raise_not_found

router = APIRouter()


def _model_dict(model: ModelConfig) -> dict:
    return {
        "id": model.id,
        "provider": model.provider.value,
        "model_name": model.model_name,
        "display_name": model.display_name,
        "reasoning_effort": model.reasoning_effort,
        "is_custom": model.is_custom,
    }


@router.get("/models")
async def list_models(catalog: ModelCatalog = Depends(get_catalog)):
    """List built-in and custom models"""
    return {
        "default": catalog.default.id,
        "models": [_model_dict(m) for m in catalog.all()],
    }


@router.post("/models", status_code=status.HTTP_201_CREATED)
async def add_custom_model(
    request: CustomModelRequest,
    catalog: ModelCatalog = Depends(get_catalog),
):
    model = ModelConfig(**request.model_dump(), is_custom=True)
    try:
        added = catalog.add_custom(model)
    except ValueError as e:
        raise_conflict(str(e))
    return _model_dict(added)


@router.delete("/models/{model_id:path}")
async def remove_custom_model(model_id: str, catalog: ModelCatalog = Depends(get_catalog)):
    try:
        removed = catalog.remove_custom(model_id)
    except ValueError as e:
        raise_bad_request(str(e))
    if not removed:
        raise_not_found("Model", model_id)
    return {"deleted": model_id}


@router.get("/keys")
async def key_status(credentials: CredentialStore = Depends(get_credentials)):
    """Which providers have a key configured (keys themselves are never returned)"""
    return {
        "providers": [
            {
                "provider": p.value,
                "display_name": p.display_name,
                "configured": credentials.is_configured(p),
            }
            for p in Provider
        ]
    }


@router.put("/keys/{provider}")
async def save_key(
    provider: Provider,
    request: ApiKeyRequest,
    credentials: CredentialStore = Depends(get_credentials),
):
    if not credentials.save(provider.api_key_name, request.api_key.strip()):
        raise_bad_request(f"Failed to save API key for {provider.display_name}")
    return {"provider": provider.value, "configured": True}


@router.delete("/keys/{provider}")
async def delete_key(provider: Provider, credentials: CredentialStore = Depends(get_credentials)):
    if not credentials.delete(provider.api_key_name):
        raise_not_found("API key", provider.value)
    return {"provider": provider.value, "configured": False}
