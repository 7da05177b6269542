import uvicorn
from earnings_console import create_app

app = create_app()


@app.get("/")
async def root():
    return {"message": "Welcome to the Vendor Earnings Console API."}


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
