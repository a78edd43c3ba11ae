"""
Servidor API usando FastAPI
"""

import os

import uvicorn

def run_api():
    """Ejecuta el servidor API"""
    port = int(os.getenv("PORT", "8000"))

    print("🚀 Starting Veta API")
    print("=" * 50)
    print("API Endpoints:")
    print(f"• Health Check: http://localhost:{port}/health")
    print(f"• Discovery: POST http://localhost:{port}/api/discover")
    print(f"• API Docs: http://localhost:{port}/docs")
    print("=" * 50)

    # Ejecutar servidor
    uvicorn.run(
        "api:app",  # Usar string path en lugar del objeto importado
        host="0.0.0.0",
        port=port,
        reload=os.getenv("API_RELOAD", "false").lower() == "true",
        log_level="info"
    )

if __name__ == "__main__":
    run_api()
