# src/ztoken/api/__main__.py
from __future__ import annotations

import uvicorn

from ztoken.env import load_dotenv_if_present
from ztoken.util.jsonlog import configure_structured_logging


def main() -> None:
    # Load .env early so ZTOKEN_* vars exist before anything reads them.
    load_dotenv_if_present()
    configure_structured_logging()

    # Import after dotenv load (prevents "config read before env" surprises)
    from ztoken.api.app import create_app
    from ztoken.runtime.token_config import load_token_config

    cfg = load_token_config()
    uvicorn.run(create_app(), host=cfg.api_host, port=cfg.api_port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
