# Models package init
"""
Importing the package registers every model with Base.metadata so string
relationship targets ("Course", "Bootcamp") resolve at mapper configuration.
"""

from devcamper.models.bootcamp import Bootcamp
from devcamper.models.course import Course
from devcamper.models.user import User

__all__ = ["Bootcamp", "Course", "User"]
