"""Budget Tracker API package."""
