# extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_bcrypt import Bcrypt

# Shared extension objects, bound to the app inside create_app()
db = SQLAlchemy()

login_manager = LoginManager()
bcrypt = Bcrypt()
