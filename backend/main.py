import os
from vybraa import create_app

app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "5000"))
    debug = os.getenv("VYBRAA_ENV", "dev") == "dev"

    # the reloader would start a second scheduler in the child process
    app.run(host=host, port=port, debug=debug, use_reloader=not app.config.get("ENABLE_SCHEDULER"))
