"""
FastAPI Production Application

Main entry point for the Marketplace User Activity API.
"""

from marketplace.serving.api.main import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
