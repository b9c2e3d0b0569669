"""Run the IssueBoard API with uvicorn."""

import os

import uvicorn

from issueboard.api.app import create_app
from issueboard.logging import setup_logging


def main() -> None:
    setup_logging()
    uvicorn.run(
        create_app(),
        host=os.environ.get("ISSUEBOARD_HOST", "127.0.0.1"),
        port=int(os.environ.get("ISSUEBOARD_PORT", "8000")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
