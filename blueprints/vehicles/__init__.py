from flask import Blueprint

vehicles_bp = Blueprint('vehicles', __name__, url_prefix='/api')

from . import routes
