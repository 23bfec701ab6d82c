"""
Utility functions for ID generation
"""
import uuid


def generate_client_id() -> str:
    """Generate a client ID that is unique for the life of the process"""
    return "client_" + uuid.uuid4().hex
