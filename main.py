"""Run the API locally: `python main.py`."""

import uvicorn

from fruit_counter.config import PORT
from fruit_counter.main import app

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=PORT)
