"""
Assessment Models Registry

This module imports and exposes all models from the logical submodules
(users, exams) so they are registered with Django's ORM under the
``assessment`` app label.

Author: Assessment Development Team
Version: 1.0.0
"""

# Import all user-related models for registration with Django ORM
from .users.models import *

# Import all exam-related models for registration with Django ORM
from .exams.models import *
