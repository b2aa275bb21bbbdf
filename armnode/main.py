from __future__ import annotations

import logging
import os

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from armnode.config import Settings, get_settings
from armnode.exceptions import (
    PollingTimeoutError,
    ProviderFailedError,
    SubmissionError,
    TemplateValidationError,
    TransportError,
)
from armnode.models import NodeMetadata, PreviewRequest, UpRequest
from armnode.services.compute_service import ArmComputeService
from armnode.services.credential_store import CredentialStore
from armnode.services.naming import node_name

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()
credential_store = CredentialStore()

app = FastAPI(title="ARM template node provisioner", version="0.2.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowedOrigins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("Using resource group %s in %s", settings.resourceGroup or "<unset>", settings.location)


def get_service_factory(current: Settings = Depends(get_settings)):
    def factory(creds=None) -> ArmComputeService:
        return ArmComputeService.from_settings(current, credential_store, creds)
    return factory


@app.get("/health")
def health(current: Settings = Depends(get_settings)):
    return {
        "status": "ok",
        "locationDefault": current.location,
        "resourceGroup": current.resourceGroup or "",
        "azureConfigured": not current.missing_azure_settings(),
        "pollInterval": current.pollInterval,
        "pollTimeout": current.pollTimeout,
    }


@app.post("/preview")
def preview(req: PreviewRequest, current: Settings = Depends(get_settings)):
    try:
        name = node_name(req.group, req.name)
        return ArmComputeService.preview(name, req.settings, current.default_credentials)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/up", response_model=NodeMetadata)
def up(req: UpRequest, factory=Depends(get_service_factory)):
    try:
        service = factory(req.creds)
        return service.create_node(node_name(req.group, req.name), req.settings)
    except TemplateValidationError as e:
        raise HTTPException(status_code=400, detail={"message": str(e), "errors": e.errors})
    except SubmissionError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ProviderFailedError as e:
        raise HTTPException(status_code=409, detail={"message": str(e), "state": e.state.value})
    except PollingTimeoutError as e:
        raise HTTPException(status_code=504, detail={"message": str(e), "lastState": e.last_state})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/nodes/{name}", response_model=NodeMetadata)
def get_node(name: str, factory=Depends(get_service_factory)):
    try:
        return factory().get_node(name)
    except TransportError as e:
        if e.status_code == 404:
            raise HTTPException(status_code=404, detail=f"Deployment '{name}' not found")
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
