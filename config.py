# ==============================================================================
# config.py
# ------------------------------------------------------------------------------
# Configuration settings for the Flask application.
# Uses environment variables for sensitive data to keep them out of version control.
# ==============================================================================

import os
from dotenv import load_dotenv

# Determine the absolute path of the project directory
basedir = os.path.abspath(os.path.dirname(__file__))

# Load environment variables from a .env file located in the project root
load_dotenv(os.path.join(basedir, '.env'))

class Config:
    """
    Base configuration class. Contains default settings that can be overridden
    by environment-specific configurations.
    """
    # --- Security ---
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-should-really-set-a-secret-key-in-your-env-file'

    # --- Database Configuration ---
    # SQLite in the instance folder unless DATABASE_URL points elsewhere.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance/app.db')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- File Upload Configuration ---
    UPLOAD_FOLDER = os.path.join(basedir, 'instance/uploads')

    # Distributor, category and sales files may be CSV or Excel.
    ALLOWED_EXTENSIONS = {'.csv', '.xlsx'}

    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # Sales files above this many data rows are rejected before mapping.
    MAX_SALES_RECORDS = int(os.environ.get('MAX_SALES_RECORDS') or 100000)
