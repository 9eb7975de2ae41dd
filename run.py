"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py --debug run

First start:

    flask --app run.py db upgrade        # or db init / migrate on a fresh checkout
    flask --app run.py seed-locations
    then open /auth/seed-admin to create the first super admin.
"""

from gatepal import create_app

# WSGI application object; `flask run` looks for this `app` variable.
app = create_app()

if __name__ == "__main__":
    # Direct `python run.py` usage is for development only.
    app.run(debug=True)
