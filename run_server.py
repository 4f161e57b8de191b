#!/usr/bin/env python3
"""
Simple server launcher
"""
import uvicorn
from ats_bridge.utils.config import settings

if __name__ == "__main__":
    print("="*70)
    print(f"Starting {settings.APP_NAME} Server")
    print("="*70)

    if settings.active_credential is None:
        print(f"\nWARNING: {settings.active_credential_name} is not set.")
        print("The server will start, but every analysis will fail until it is configured.")
        print("Set it in the environment or in the .env file.")

    print(f"\n* Delegate: {settings.AI_PROVIDER} / {settings.active_model_name}")
    print(f"* Port: {settings.PORT}")
    print(f"* Configuration: .env")
    print("\nStarting server...\n")

    uvicorn.run(
        "ats_bridge.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        log_level=settings.LOG_LEVEL.lower()
    )
