"""
Keenetic VPN Switch - Main API Server

A FastAPI-based backend that lets a device on the home network move its
own traffic between the default route and a VPN policy on a Keenetic
router, through the router's RCI API.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import route handlers
import vpn_routes
import device_routes
import system_routes
from config_manager import get_config
from rci_gateway import RouterError

logger = logging.getLogger("uvicorn")

# Create FastAPI app
app = FastAPI(
    title="Keenetic VPN Switch",
    version="1.0.0",
    description="Toggle per-device VPN routing policies on a Keenetic router"
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(vpn_routes.router, prefix="/api", tags=["VPN"])
app.include_router(device_routes.router, prefix="/api/devices", tags=["Devices"])
app.include_router(system_routes.router, prefix="/api/system", tags=["System"])


@app.exception_handler(RouterError)
async def router_error_handler(request: Request, exc: RouterError):
    """Router unreachable, login refused or unexpected router reply"""
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=503, content={"error": str(exc)})


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} crashed: {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=500, content={"error": f"Internal error: {exc}"})


@app.get("/")
async def root():
    """Root endpoint - API information"""
    return {
        "message": "Keenetic VPN Switch API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    config = get_config()
    uvicorn.run(app, host=config.bind_host, port=config.port)
