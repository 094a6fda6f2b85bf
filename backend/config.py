import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///tracker.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Round validation: require the four raw scores to add up to RAW_TOTAL
    ENFORCE_RAW_TOTAL = os.environ.get('ENFORCE_RAW_TOTAL', 'false').lower() == 'true'
    RAW_TOTAL = int(os.environ.get('RAW_TOTAL', '100000'))
    # Player board divider position used until the organizer picks one
    DEFAULT_TOP_K = int(os.environ.get('DEFAULT_TOP_K', '4'))
