"""
Configuración común de pytest: app/ en el path y variables de entorno de prueba
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'app'))

# Deben existir antes de importar config.settings
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("MONGO_DB", "veta_test")
