"""Application package for the Internship Portal."""
