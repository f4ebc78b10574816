import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///dontblink.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Rounds per session
    ROUNDS = int(os.environ.get('ROUNDS', '5'))
    # Real color change window (ms)
    MIN_DELAY_MS = int(os.environ.get('MIN_DELAY_MS', '2000'))
    MAX_DELAY_MS = int(os.environ.get('MAX_DELAY_MS', '6000'))
    # Deceptive flash: chance per round and the window it may start in (ms)
    FAKE_CHANCE = float(os.environ.get('FAKE_CHANCE', '0.38'))
    FAKE_MIN_DELAY_MS = int(os.environ.get('FAKE_MIN_DELAY_MS', '1200'))
    FAKE_MAX_DELAY_MS = int(os.environ.get('FAKE_MAX_DELAY_MS', '3500'))
    FAKE_DURATION_MS = int(os.environ.get('FAKE_DURATION_MS', '130'))
    # Minimum gap between flash end and the real change, plus jitter on top (ms)
    REAL_AFTER_FAKE_MS = int(os.environ.get('REAL_AFTER_FAKE_MS', '900'))
    REAL_AFTER_FAKE_JITTER_MS = int(os.environ.get('REAL_AFTER_FAKE_JITTER_MS', '1500'))
    # Hold times after a scored round / an early click (ms)
    RESULT_PAUSE_MS = int(os.environ.get('RESULT_PAUSE_MS', '1100'))
    TOO_EARLY_PAUSE_MS = int(os.environ.get('TOO_EARLY_PAUSE_MS', '1400'))
    # Per-channel lightening applied to the flash color
    FLASH_LIGHTEN = int(os.environ.get('FLASH_LIGHTEN', '65'))
    # Leaderboard window (top-C) and default display length
    LEADERBOARD_SIZE = int(os.environ.get('LEADERBOARD_SIZE', '100'))
    LEADERBOARD_DISPLAY = int(os.environ.get('LEADERBOARD_DISPLAY', '10'))
    # 'sql' or 'memory'
    LEADERBOARD_BACKEND = os.environ.get('LEADERBOARD_BACKEND', 'sql')
    # Local prefs (best score, name, history). Empty keeps them in memory.
    PREFS_PATH = os.environ.get('PREFS_PATH', '')
