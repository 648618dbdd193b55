from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront_pricing import __version__
from storefront_pricing.config.logging import init_logging
from storefront_pricing.config.settings import get_settings
from storefront_pricing.api.pricing_api import router as pricing_router

settings = get_settings()
init_logging(settings.log_level)

app = FastAPI(
    title="Storefront Pricing API",
    description="Price-normalization rules for storefront variant pricing",
    version=__version__,
)

# Enable CORS for the embedded admin frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pricing_router)


@app.get("/")
async def root():
    return {"status": "online", "message": "Storefront Pricing API Active"}


@app.get("/system/status")
async def get_status():
    return {
        "engine_active": True,
        "version": __version__,
        "default_ending": settings.default_ending,
        "default_block_size": settings.default_block_size,
        "write_batch_size": settings.write_batch_size,
        "write_pause_ms": settings.write_pause_ms,
    }
