"""Debt tracking and reminders for group orders split over chat."""
