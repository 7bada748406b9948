import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///bingo.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma-separated list of browser origins allowed for HTTP and Socket.IO
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:5173').split(',') if o.strip()]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    # Chat messages replayed to a socket on join-room
    CHAT_HISTORY_LIMIT = int(os.environ.get('CHAT_HISTORY_LIMIT', '100'))
    # OpenAI-compatible chat completion endpoint used for "ai_gen" rooms (Ollama by default)
    LLM_API_URL = os.environ.get('LLM_API_URL', 'http://localhost:11434/v1/chat/completions')
    LLM_MODEL = os.environ.get('LLM_MODEL', 'llama3.2')
    LLM_API_KEY = os.environ.get('LLM_API_KEY')
    LLM_TIMEOUT_SEC = float(os.environ.get('LLM_TIMEOUT_SEC', '30'))
