#!/usr/bin/env python3
"""
Middleware Console Startup Script
Simple script to run the console app
"""

import sys
import os
from pathlib import Path

# Add src to Python path
src_root = Path(__file__).parent / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

# Set PYTHONPATH as well so reload workers can import the package
current_pythonpath = os.environ.get('PYTHONPATH', '')
if str(src_root) not in current_pythonpath:
    if current_pythonpath:
        os.environ['PYTHONPATH'] = f"{src_root}{os.pathsep}{current_pythonpath}"
    else:
        os.environ['PYTHONPATH'] = str(src_root)

if __name__ == "__main__":
    import uvicorn
    import argparse
    from dotenv import load_dotenv

    # Load environment variables
    load_dotenv()

    # Parse command line arguments
    parser = argparse.ArgumentParser(description='Middleware Console')
    parser.add_argument('--host', default=os.getenv('HOST', '0.0.0.0'), help='Host to bind to')
    parser.add_argument('--port', type=int, default=int(os.getenv('PORT', '8080')), help='Port to bind to')
    parser.add_argument('--reload', action='store_true', default=os.getenv('RELOAD', 'false').lower() == 'true', help='Enable auto-reload')
    args = parser.parse_args()

    log_level = os.getenv("LOG_LEVEL", "info").lower()
    api_url = os.getenv("MIDDLEWARE_MANAGER_API_URL", "http://localhost:3456")

    print(f"Starting Middleware Console on {args.host}:{args.port}")
    print(f"  Backend: {api_url}")
    print(f"  Reload: {args.reload}, Log Level: {log_level}")

    uvicorn.run(
        "middleware_console.console:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=log_level
    )
