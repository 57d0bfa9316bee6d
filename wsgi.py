"""
WSGI entry point for the volunteer hub.

For gunicorn: wsgi:app
"""

from app import create_app

app = create_app()


if __name__ == "__main__":
    app.run()
