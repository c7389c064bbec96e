"""
Placement Management System - back office service.

Architecture:
- MongoDB: users, administrator/staff profiles, departments, course categories, students
- S3: profile images
- SMTP: welcome emails for imported students
"""

__version__ = "1.0.0"
