"""
Revision Tracker
SQLAlchemy models.

The ``db`` extension object is created here and bound to the Flask app in
``revtrack.create_app``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
