from flask import Blueprint

bp = Blueprint('main', __name__, url_prefix='/api')

# Import routes and forms at the bottom
from scheme_manager.main import routes, forms
