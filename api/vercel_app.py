"""
Vercel-specific Flask application entry point.
Serverless deployment reuses the module-level MongoDB connection pool.
"""

import os
from app import create_app

app = create_app()

# Vercel expects the WSGI application to be named 'app'
if __name__ == "__main__":
    app.run(debug=False, host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
