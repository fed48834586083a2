import logging
from sniperlm.logger import setup_logging
from sniperlm.handlers import build_app

log = logging.getLogger(__name__)

def main():
    setup_logging()
    app = build_app()
    log.info("SniperLM bot polling")
    app.run_polling()

if __name__ == "__main__":
    main()
