"""
Entry point for Flask.

Usage (from project root):

    export SECRET_KEY="..."
    export ADMIN_PASSWORD="..."   # first start only, seeds the admin account
    flask --app run.py --debug run

Database migrations (Flask-Migrate):

    flask --app run.py db init
    flask --app run.py db migrate -m "..."
    flask --app run.py db upgrade
"""

from pricecompare import create_app

# WSGI application object. `flask run` and WSGI servers look for `app`.
app = create_app()

if __name__ == "__main__":
    # Dev only. Use `flask run` or a WSGI server instead.
    app.run(debug=True)
