"""API routers."""

from . import admins
from . import auth
from . import health
from . import orders

__all__ = ['admins', 'auth', 'health', 'orders']
