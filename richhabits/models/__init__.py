"""
Rich Habits OS
Model package: the shared Flask-SQLAlchemy instance.

Model modules import ``db`` from here; ``create_app`` imports every model
module so that ``db.create_all()`` and Flask-Migrate see the full schema.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
