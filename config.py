import os
import tempfile


class Config:
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "dev-secret")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # LOCAL mode uses SQLite
    LOCAL_DB = os.getenv("LOCAL_DB", "1") == "1"

    if os.getenv("DATABASE_URL"):
        SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    elif LOCAL_DB:
        SQLALCHEMY_DATABASE_URI = "sqlite:///local.db"
    else:
        DB_USER = os.getenv("DB_USER", "")
        DB_PASS = os.getenv("DB_PASS", "")
        DB_NAME = os.getenv("DB_NAME", "")
        CLOUD_SQL_CONNECTION_NAME = os.getenv("CLOUD_SQL_CONNECTION_NAME", "")
        SQLALCHEMY_DATABASE_URI = (
            f"postgresql+psycopg2://{DB_USER}:{DB_PASS}@/"
            f"{DB_NAME}?host=/cloudsql/{CLOUD_SQL_CONNECTION_NAME}"
        )

    # How long a new order stays hidden from the admin list.
    ORDER_ADMIN_VISIBILITY_DELAY_SECONDS = int(os.getenv("ORDER_ADMIN_VISIBILITY_DELAY_SECONDS", "120"))
    # How long the owner may cancel a new order.
    ORDER_CANCEL_WINDOW_SECONDS = int(os.getenv("ORDER_CANCEL_WINDOW_SECONDS", "120"))

    RESET_CODE_TTL_MINUTES = int(os.getenv("RESET_CODE_TTL_MINUTES", "10"))
    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))

    # "function" posts to the mail Cloud Function, "log" only writes to the app log
    MAIL_BACKEND = os.getenv("MAIL_BACKEND", "log" if LOCAL_DB else "function")
    MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@unilunch.com")

    ORDER_EVENTS_ENABLED = os.getenv("ORDER_EVENTS_ENABLED", "0" if LOCAL_DB else "1") == "1"
    # Firestore Native database holding the order event log
    ORDER_EVENTS_DATABASE = os.getenv("FIRESTORE_DB_ID", "default")
    ORDER_EVENTS_COLLECTION = os.getenv("ORDER_EVENTS_COLLECTION", "order_events")
    ORDER_EVENTS_ATTEMPTS = int(os.getenv("ORDER_EVENTS_ATTEMPTS", "3"))

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///" + os.path.join(tempfile.gettempdir(), "unilunch-test.db")
    MAIL_BACKEND = "log"
    ORDER_EVENTS_ENABLED = False
