"""Local development server.

Usage:
    python run.py
    PORT=5050 python run.py

Production runs the app factory under a WSGI server (`viao:create_app()`).
"""

import os

from dotenv import load_dotenv

load_dotenv()  # .env must be loaded before config classes read os.environ

from viao import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
