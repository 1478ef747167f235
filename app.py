import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.app.app import app  # noqa: E402

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    print("🚀 Starting Student Counselling Portal API...")
    print(f"🔌 API will be available at: http://localhost:{port}/api")
    print(f"📚 API Documentation at: http://localhost:{port}/docs")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info"
    )
