# models/__init__.py

from .users import User
from .removed_user import RemovedUser
from .user_request import UserRequest
from .venue import Venue
from .group import Group
from .subject import Subject
from .subject_assignment import SubjectAssignment
from .student import Student
from .timetable import Timetable, Slot

__all__ = [
    "User",
    "RemovedUser",
    "UserRequest",
    "Venue",
    "Group",
    "Subject",
    "SubjectAssignment",
    "Student",
    "Timetable",
    "Slot"
]
