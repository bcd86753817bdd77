"""
VPN-related API routes

Handlers are plain functions so FastAPI runs them in its threadpool;
every one of them blocks on router round-trips.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from models import InterfaceRequest, VpnRequest
from vpn_manager import PolicyController, get_controller

router = APIRouter()


def client_identifier(request: Request, client: Optional[str] = None) -> str:
    """Explicit ?client=, else the forwarded source address, else the peer address"""
    if client:
        return client
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else ""


def _with_status(controller: PolicyController, identifier: str, result):
    return {"result": result, "vpn": controller.get_status(identifier)}


@router.get("/status")
def status(
    identifier: str = Depends(client_identifier),
    controller: PolicyController = Depends(get_controller),
):
    """Router information and VPN status of the calling client"""
    return {
        "client": controller.describe_router(),
        "vpn": controller.get_status(identifier),
    }


@router.get("/policies")
def list_policies(controller: PolicyController = Depends(get_controller)):
    """Policies a client can be switched to"""
    return {"policies": controller.list_available_policies()}


@router.get("/interfaces")
def list_interfaces(controller: PolicyController = Depends(get_controller)):
    """VPN tunnel interfaces configured on the router"""
    return {"interfaces": controller.list_vpn_interfaces()}


@router.post("/toggle")
def toggle(
    identifier: str = Depends(client_identifier),
    controller: PolicyController = Depends(get_controller),
):
    """Switch the client between its current state and the target policy"""
    return _with_status(controller, identifier, controller.toggle(identifier))


@router.post("/enable")
def enable(
    identifier: str = Depends(client_identifier),
    controller: PolicyController = Depends(get_controller),
):
    """Route the client through the target policy"""
    return _with_status(controller, identifier, controller.enable(identifier))


@router.post("/disable")
def disable(
    identifier: str = Depends(client_identifier),
    controller: PolicyController = Depends(get_controller),
):
    """Return the client to the default policy"""
    return _with_status(controller, identifier, controller.disable(identifier))


@router.post("/vpn")
def set_vpn(
    body: VpnRequest,
    identifier: str = Depends(client_identifier),
    controller: PolicyController = Depends(get_controller),
):
    """Enable or disable VPN routing, optionally with a chosen policy"""
    identifier = body.client or identifier
    if body.policy:
        controller = PolicyController(controller.gateway, body.policy)

    if body.enabled:
        result = controller.enable(identifier, body.policy)
    else:
        result = controller.disable(identifier)
    return _with_status(controller, identifier, result)


@router.post("/interface")
def select_interface(
    body: InterfaceRequest,
    identifier: str = Depends(client_identifier),
    controller: PolicyController = Depends(get_controller),
):
    """VPN status measured against another policy"""
    policy = body.policy or body.interface
    if not policy:
        return JSONResponse(status_code=400, content={"error": "Policy name required"})

    manager = PolicyController(controller.gateway, policy)
    return {"vpn": manager.get_status(body.client or identifier)}
