import logging
import time
from fastapi import Request
from logging.handlers import TimedRotatingFileHandler
import gzip
import shutil
import os

from config import LOG_FILE

LOGGER_NAME = "relay_logger"
LOG_MAX_SIZE = 20 * 1024 * 1024  # 20 MB
LOG_BACKUP_COUNT = 5             # Keep last 5 log files


def setup_logger(log_file: str = LOG_FILE):
    """
    Configure the relay logger with a rotating, compressing file handler.
    Rotation:
      - Weekly (every Monday at midnight)
      - Max file size: 20 MB
      - Automatically compresses old logs
    Calling it again returns the already configured logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    if logger.handlers:
        return logger

    handler = TimedRotatingFileHandler(
        log_file,
        when="W0",             # Rotate weekly (Monday)
        backupCount=LOG_BACKUP_COUNT,
        encoding="utf-8",
        delay=True
    )

    def should_rollover():
        return os.path.exists(log_file) and os.path.getsize(log_file) >= LOG_MAX_SIZE

    old_emit = handler.emit
    def emit_with_size_check(record):
        if should_rollover():
            handler.doRollover()
        old_emit(record)

    handler.emit = emit_with_size_check
    handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))

    def compress_old_log(source_path):
        if os.path.exists(source_path):
            compressed_path = f"{source_path}.gz"
            with open(source_path, "rb") as f_in, gzip.open(compressed_path, "wb") as f_out:
                shutil.copyfileobj(f_in, f_out)
            os.remove(source_path)

    old_do_rollover = handler.doRollover
    def do_rollover_and_compress():
        old_do_rollover()
        # Compress rotated files, never the live one
        log_dir = os.path.dirname(log_file) or "."
        base = os.path.basename(log_file)
        for file in os.listdir(log_dir):
            if file.startswith(base) and file != base and not file.endswith(".gz"):
                file_path = os.path.join(log_dir, file)
                if os.path.isfile(file_path):
                    compress_old_log(file_path)

    handler.doRollover = do_rollover_and_compress

    logger.addHandler(handler)
    return logger


def create_logging_middleware(app, logger):
    """
    Adds a middleware to log HTTP request timing, IP and status.
    Websocket traffic is logged by the relay itself.
    """
    @app.middleware("http")
    async def log_request_response_time(request: Request, call_next):
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "-"
        method = request.method
        path = request.url.path

        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        logger.info(
            f"IP={client_ip} | {method} {path} | Status={response.status_code} | "
            f"Time={process_time:.4f}s"
        )
        response.headers["X-Process-Time"] = str(round(process_time, 4))
        return response

    return app
