# Overview: Shared Flask extension instances (ORM session + Alembic wiring).

from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
migrate = Migrate(compare_type=True)
