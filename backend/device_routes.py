"""
Device-related API routes
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from vpn_manager import CLIENT_NOT_FOUND, PolicyController, get_controller

router = APIRouter()


@router.get("")
def list_devices(controller: PolicyController = Depends(get_controller)):
    """Hotspot hosts known to the router and their policies"""
    return {"devices": controller.list_clients()}


@router.get("/{identifier}")
def resolve_device(identifier: str, controller: PolicyController = Depends(get_controller)):
    """Look a device up by IP address or hostname"""
    host = controller.resolve_client(identifier)
    if not host:
        return JSONResponse(status_code=404, content={"error": CLIENT_NOT_FOUND})
    return host
