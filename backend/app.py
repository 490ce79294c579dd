"""Application entry point."""
from dotenv import load_dotenv

# Load environment variables before Config reads them
load_dotenv()

from app import create_app  # noqa: E402

app = create_app()

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
