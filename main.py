import uvicorn
import os
import sys

if __name__ == "__main__":
    # run from the project root so .env and the sqlite file resolve
    os.chdir(os.path.dirname(os.path.abspath(__file__)))
    reload = "--reload" in sys.argv

    uvicorn.run(
        "ebh.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=reload,
        log_level="info"
    )
