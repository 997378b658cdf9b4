# backend/wsgi.py
from stockworks import create_app

app = create_app()
