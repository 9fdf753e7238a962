import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # 'sql' persists through SQLAlchemy; 'memory' keeps everything in-process
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND') or ('sql' if os.environ.get('DATABASE_URL') else 'memory')
    CORS_ORIGINS = [o for o in os.environ.get('CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173').split(',') if o]
    SESSION_CODE_LENGTH = int(os.environ.get('SESSION_CODE_LENGTH', '6'))
    # Ruleset
    STARTING_NERVE = int(os.environ.get('STARTING_NERVE', '8'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '5'))
    POTENCY_MIN = int(os.environ.get('POTENCY_MIN', '-2'))
    POTENCY_MAX = int(os.environ.get('POTENCY_MAX', '2'))
    STAT_MIN = int(os.environ.get('STAT_MIN', '1'))
    STAT_MAX = int(os.environ.get('STAT_MAX', '10'))
    DEFAULT_VOWELS = ['Ba', 'Li', 'Ske', 'Po', 'Nu', 'Hee']
