import uvicorn

from tratativas.api.app import create_app
from tratativas.bootstrap import build_services
from tratativas.config.settings import Settings
from tratativas.logging.logger import Log


def main() -> None:
    """Entry point: load settings -> build services -> serve the API."""
    settings = Settings()
    log = Log()
    log.configure(settings.log_level)

    services = build_services(settings, log)
    app = create_app(settings, services, log.child("api"))
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_config=None)


if __name__ == "__main__":
    main()
