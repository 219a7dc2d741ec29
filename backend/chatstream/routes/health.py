from fastapi import APIRouter, Depends

from chatstream.models.model_config import Provider
from chatstream.routes.dependencies import get_credentials
from chatstream.services.credentials import CredentialStore

router = APIRouter()


@router.get("/health")
async def health(credentials: CredentialStore = Depends(get_credentials)):
    """Health check endpoint"""
    return {
        "status": "healthy",
        "providers": [p.value for p in Provider if credentials.is_configured(p)],
    }
