#!/usr/bin/env python3
"""
Run the FastAPI backend server.

Usage:
    python run_api.py
"""

import uvicorn

from config.settings import APIConfig

if __name__ == "__main__":
    print("🚀 Starting Trail Profile Lab API server...")
    print(f"📡 API will be available at: http://localhost:{APIConfig.PORT}")
    print(f"📚 Documentation at: http://localhost:{APIConfig.PORT}/docs")
    print("🛑 Press CTRL+C to stop\n")

    # reload=True needs the app as an import string
    uvicorn.run(
        "api.main:app",
        host=APIConfig.HOST,
        port=APIConfig.PORT,
        reload=True
    )
