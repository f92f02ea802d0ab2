"""
Dental Appointment Manager

Books, lists, edits and deletes dental appointments kept in local storage,
checking opening hours, weekdays, half-hour slots and double bookings.
"""

__version__ = "1.0.0"
