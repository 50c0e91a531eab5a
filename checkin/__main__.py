import uvicorn

from checkin.config import get_settings

if __name__ == "__main__":
    uvicorn.run(
        "checkin.api:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=get_settings().log_level.lower(),
    )
