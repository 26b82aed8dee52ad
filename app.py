import logging

from flask import Flask
from flask_cors import CORS

from config import Config
from errors import register_error_handlers
from routes_api import api
from routes_auth import auth_api
from seed import seed_command
from sql_db import init_db


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # create tables for demo
    init_db(app.config["SQLALCHEMY_DATABASE_URI"])

    origins = [o.strip() for o in app.config.get("CORS_ORIGINS", "*").split(",") if o.strip()]
    CORS(app, resources={r"/api/*": {"origins": origins}})

    register_error_handlers(app)
    app.register_blueprint(auth_api)
    app.register_blueprint(api)
    app.cli.add_command(seed_command)
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
