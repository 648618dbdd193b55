"""
Serve the pricing preview API with uvicorn.

Host and port come from PRICING_API_HOST / PRICING_API_PORT.
"""
import argparse

import uvicorn

from storefront_pricing.config.settings import get_settings


def main():
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the storefront pricing API")
    parser.add_argument("--host", default=settings.api_host)
    parser.add_argument("--port", type=int, default=settings.api_port)
    parser.add_argument("--no-reload", action="store_true", help="Disable auto-reload")
    args = parser.parse_args()

    print(f"Starting Storefront Pricing API on {args.host}:{args.port}...")
    uvicorn.run(
        "storefront_pricing.api.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
