"""
Storefront - main entry point.

Runs the API with uvicorn:

    python -m storefront.main
"""

from __future__ import annotations

import uvicorn

from storefront.config import get_settings


def main():
    """Main entry point."""
    settings = get_settings()
    uvicorn.run(
        "storefront.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
