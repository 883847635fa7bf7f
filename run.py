"""
Run the API server (port from PORT / .env, default 3005).
Usage: python3 run.py   (from the project root)
"""
import uvicorn
from dotenv import load_dotenv

if __name__ == "__main__":
    load_dotenv()
    from config import Settings

    settings = Settings()
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
