"""Learning Tracker web service."""
