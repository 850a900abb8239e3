import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Launch the HTTP service that receives scheduler triggers and test requests."""
  port = os.getenv("PORT", "8080")
  logger.info("Starting notification dispatcher on port %s...", port)
  # Replace the current process so uvicorn receives SIGTERM from the platform directly.
  os.execvp("uvicorn", ["uvicorn", "notifier.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"])


if __name__ == "__main__":
  main()
