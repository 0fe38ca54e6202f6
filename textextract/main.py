"""Entry points for the backend API server and the edge proxy."""

import uvicorn

from textextract.utils.config import load_config
from textextract.utils.logger import setup_logging


def main() -> None:
    """Start the backend FastAPI server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(
        "textextract.api.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )


def edge_main() -> None:
    """Start the edge proxy that forwards /api/* to the backend."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(
        "textextract.edge.proxy:create_edge_app",
        factory=True,
        host="0.0.0.0",
        port=8080,
    )


if __name__ == "__main__":
    main()
