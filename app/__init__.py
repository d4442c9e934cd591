"""Attendance Check-in API Application."""
