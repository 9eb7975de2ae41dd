"""
Flask extension instances for the GatePal console.

Created here without an app (so models, blueprints and the directory backend
can import them freely) and bound to the app in create_app().
"""


from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf import CSRFProtect

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
