# backend/wsgi.py
from storelend import create_app

app = create_app()
