"""
Report PDF Service entrypoint - runs uvicorn server.
"""

import uvicorn

from report_pdf.config import get_settings


def main() -> None:
    """Run the report PDF server."""
    settings = get_settings()

    print(f"Starting Report PDF Service on http://{settings.host}:{settings.port}")

    uvicorn.run(
        "report_pdf.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
