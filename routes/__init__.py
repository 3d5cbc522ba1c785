"""
Flask blueprints for the profile-scout API.
"""

from flask import Blueprint

# Create blueprints
search_bp = Blueprint('search', __name__)
research_bp = Blueprint('research', __name__)
health_bp = Blueprint('health', __name__)

# Import routes to register them
from . import search  # noqa: E402, F401
from . import research  # noqa: E402, F401
from . import health  # noqa: E402, F401

BLUEPRINTS = (search_bp, research_bp, health_bp)
