"""Entrypoint: carrega .env, configura logging e sobe a API (uvicorn)."""

import logging

import uvicorn
from dotenv import load_dotenv

from privebank.api import create_app
from privebank.config import Settings
from privebank.errors import ConfigurationError

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )
    # Não emite logs de requisição HTTP do httpx (uma linha por chamada ao gateway)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def main() -> None:
    load_dotenv()
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        raise SystemExit(f"Configuração inválida: {e}")

    setup_logging(settings.log_level)
    app = create_app(settings)
    logger.info(
        "PriveBank PIX iniciado (gateway %s, porta %s)", settings.payment_gateway, settings.port
    )
    uvicorn.run(app, host="0.0.0.0", port=settings.port, log_level="warning")


if __name__ == "__main__":
    main()
