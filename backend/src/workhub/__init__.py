"""Workhub chat backend libraries."""
