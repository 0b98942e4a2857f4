"""Workhub chat backend application package."""
