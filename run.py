#!/usr/bin/env python3
"""
Debt Amortization Engine Entry Point

Starts the FastAPI server with an in-memory debt engine.
"""

import sys

import uvicorn

from debt_engine.api import create_app
from debt_engine.config import load_config
from debt_engine.engine import DebtEngine


if __name__ == "__main__":
    config = load_config()

    print("📉 Starting Debt Amortization Engine...")
    print("💰 All financial calculations use Decimal precision")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        app = create_app(DebtEngine(config=config))
        uvicorn.run(app, host=config.api_host, port=config.api_port, log_level="info")
    except KeyboardInterrupt:
        print("\n👋 Shutting down Debt Amortization Engine...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
