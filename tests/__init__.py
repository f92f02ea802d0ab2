"""
Test suite for the Dental Appointment Manager.

Contains unit tests for validation and storage, and tests for the HTTP API.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
