"""
main.py: Server launcher and entry point.

Run this file to start the staffing engine API:

    python main.py

Interactive API docs are served at http://127.0.0.1:8000/docs

This file does NOT contain application logic. See staffplanner/main.py for
the FastAPI application, service wiring, and startup sequence.

Direct uvicorn usage:
    uvicorn staffplanner.main:app --reload
"""

from __future__ import annotations

import uvicorn


HOST = "127.0.0.1"
PORT = 8000


def main() -> None:
    """Start the staffing engine API server."""
    print("=" * 60)
    print("  Venue Staffing Engine")
    print("=" * 60)
    print(f"  Server   : http://{HOST}:{PORT}")
    print(f"  API docs : http://{HOST}:{PORT}/docs")
    print("  Demo plan: POST /plans/generate {\"date\": \"2026-03-01\"}")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    uvicorn.run(
        "staffplanner.main:app",
        host=HOST,
        port=PORT,
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
