"""
Access to the services container bound to the running app.
"""

from flask import current_app

EXTENSION_KEY = "profile_scout"


def get_services():
    return current_app.extensions[EXTENSION_KEY]
