"""
System information API routes
"""
from fastapi import APIRouter, Depends

from vpn_manager import PolicyController, get_controller

router = APIRouter()


@router.get("/info")
def system_info(controller: PolicyController = Depends(get_controller)):
    """Router name, firmware and model"""
    return controller.describe_router()
