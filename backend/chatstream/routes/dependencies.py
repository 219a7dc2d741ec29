from fastapi import Request

from chatstream.services.catalog import ModelCatalog, model_catalog
from chatstream.services.credentials import CredentialStore, credential_store
from chatstream.streaming.coordinator import StreamingCoordinator


def get_coordinator(request: Request) -> StreamingCoordinator:
    """Coordinator created in the app lifespan."""
    return request.app.state.coordinator


def get_catalog() -> ModelCatalog:
    return model_catalog


def get_credentials() -> CredentialStore:
    return credential_store
