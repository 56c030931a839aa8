"""Main entry point for the application."""

import os

from wefed import create_app

app = create_app()


if __name__ == "__main__":
    debug = app.config["ENVIRONMENT"] == "development"
    port = int(os.environ.get("PORT") or 5000)
    app.run(debug=debug, host="0.0.0.0", port=port)  # nosec
