import uvicorn
from .config import settings

if __name__ == "__main__":
    uvicorn.run(
        "leadscore.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
