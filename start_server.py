#!/usr/bin/env python3
"""
Startup script for the TaskDesk API
"""

import uvicorn

from taskdesk.config.settings import settings


def main():
    print("Starting TaskDesk API server...")
    print(f"Host: {settings.HOST}")
    print(f"Port: {settings.PORT}")
    print(f"Reload: {settings.RELOAD}")
    print("=" * 50)

    uvicorn.run(
        "taskdesk.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
