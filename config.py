import os
from dotenv import load_dotenv

load_dotenv()  # loads .env if present

class Config:
    # --- Config ---
    # Prefer an explicit DATABASE_URL (useful for deploys like Heroku/GitHub)
    DATABASE_URL = os.getenv('DATABASE_URL')

    # Individual connection settings, used when DATABASE_URL is not set.
    # Defaults to SQLite so the service runs without extra DB drivers.
    DB_DIALECT = os.getenv('DB_DIALECT', 'sqlite')  # 'postgres', 'mysql' or 'sqlite'
    DB_USER = os.getenv('DB_USER', 'postgres')
    DB_PASS = os.getenv('DB_PASS', '')
    DB_HOST = os.getenv('DB_HOST', 'localhost')
    DB_PORT = os.getenv('DB_PORT', '5432')
    DB_NAME = os.getenv('DB_NAME', 'examforge')

    SECRET_KEY = os.getenv('FLASK_SECRET', 'dev-secret-please-change')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Accounts registering or logging in with this email always get the ADMIN role
    ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', 'admin@examforge.local')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Availability is re-evaluated at least once per second for live lists
    STATUS_TICK_SECONDS = max(0.1, min(float(os.getenv('STATUS_TICK_SECONDS', '1.0')), 1.0))

    @staticmethod
    def get_database_uri():
        """Build and return the database URI"""
        if Config.DATABASE_URL:
            return Config.DATABASE_URL
        else:
            if Config.DB_DIALECT.lower() == 'mysql':
                # use pymysql (install the 'mysql' extra)
                return f'mysql+pymysql://{Config.DB_USER}:{Config.DB_PASS}@{Config.DB_HOST}:{Config.DB_PORT}/{Config.DB_NAME}'
            elif Config.DB_DIALECT.lower() in ('postgres', 'postgresql'):
                # postgres (install the 'postgres' extra)
                return f'postgresql+psycopg2://{Config.DB_USER}:{Config.DB_PASS}@{Config.DB_HOST}:{Config.DB_PORT}/{Config.DB_NAME}'
            else:
                # default: file-based SQLite database in project folder
                db_path = os.path.join(os.path.dirname(__file__), 'data.sqlite')
                return f'sqlite:///{db_path}'
