"""
Flask blueprints for the PE Network API.
"""

from flask import Blueprint

# Create blueprints
network_bp = Blueprint('network', __name__)
review_bp = Blueprint('review', __name__)
connections_bp = Blueprint('connections', __name__)

# Import routes to register them
from . import errors  # noqa: E402, F401
from . import imports  # noqa: E402, F401
from . import entities  # noqa: E402, F401
from . import review  # noqa: E402, F401
from . import connections  # noqa: E402, F401
