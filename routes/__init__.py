"""
Flask blueprints for the contribution pipeline API.
"""

from flask import Blueprint

# Create blueprints
problems_bp = Blueprint('problems', __name__)
contributions_bp = Blueprint('contributions', __name__)
users_bp = Blueprint('users', __name__)

# Import routes to register them
from . import problems
from . import contributions
from . import users
