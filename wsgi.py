"""Gunicorn entry point: gunicorn wsgi:app"""
import os

from farmstore import create_app

app = create_app(os.getenv('FLASK_CONFIG', 'config.Config'))
