import os

basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev_secret_key_change_me")

    # SQLite local por defecto; en producción DATABASE_URL (Postgres)
    DB_PATH = os.environ.get("DB_PATH", os.path.join(basedir, "caja.db"))
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cookies de sesión más seguras (ajusta en producción)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # Caja
    CASH_TIMEZONE = os.environ.get("CASH_TIMEZONE", "America/Argentina/Cordoba")
    CASH_CLOSE_MAX_RETRIES = int(os.environ.get("CASH_CLOSE_MAX_RETRIES", "3"))

    # Logging (LOG_DIR vacío => sin archivo)
    LOG_DIR = os.environ.get("LOG_DIR", os.path.join(basedir, "logs"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_DIR = None
