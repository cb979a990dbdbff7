import os, tempfile, logging
from pathlib import Path
from fastapi import FastAPI, File, UploadFile, BackgroundTasks, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse
from fastapi.concurrency import run_in_threadpool
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import uvicorn
from werkzeug.utils import secure_filename
import shutil
import asyncio

from bmecat import CatalogSchemaError, InvalidCatalogError, MalformedDocumentError
from bmecat.converter import convert_file, convert_json_file

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a limiter instance with a function to get the client's IP address
limiter = Limiter(key_func=get_remote_address)
app = FastAPI(title="BMECat Catalog Converter")
# Add rate limit exceeded handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Define temp directory for file uploads
UPLOAD_DIR = Path(os.environ.get("BMECAT_UPLOAD_DIR", tempfile.gettempdir()))
MAX_FILE_SIZE = int(os.environ.get("BMECAT_MAX_FILE_SIZE", 100 * 1024 * 1024))  # 100 MB
MAX_CONCURRENT_CONVERSIONS = int(os.environ.get("BMECAT_MAX_CONCURRENT", 2))

# Semaphore limiting concurrent conversions
CONVERSION_SEMAPHORE = asyncio.Semaphore(MAX_CONCURRENT_CONVERSIONS)


def allowed_file(filename: str, extension: str) -> bool:
    # Case-insensitive check for the expected extension
    return "." in filename and filename.rsplit(".", 1)[1].lower() == extension


@app.get("/health")
async def health_check():
    return JSONResponse(content={"status": "healthy"}, status_code=200)


@app.post("/bmecat-to-json")
@limiter.limit("5/minute")
async def bmecat_to_json(request: Request, file: UploadFile = File(...)):
    return await _convert_upload(file, "xml", "json", "application/json", convert_file)


@app.post("/json-to-bmecat")
@limiter.limit("5/minute")
async def json_to_bmecat(request: Request, file: UploadFile = File(...)):
    return await _convert_upload(file, "json", "xml", "application/xml", convert_json_file)


async def _convert_upload(file: UploadFile, input_ext, output_ext, media_type, conversion):
    # Check if filename is empty
    if not file.filename:
        raise HTTPException(status_code=400, detail="No selected file")

    # Check file extension
    if not allowed_file(file.filename, input_ext):
        raise HTTPException(
            400, f"Invalid file type. Only {input_ext.upper()} files are accepted."
        )

    # Validate file size
    if file.size is not None and file.size > MAX_FILE_SIZE:
        raise HTTPException(
            400, f"File too large (max {MAX_FILE_SIZE // (1024*1024)} MB)"
        )

    safe_file_name = Path(secure_filename(file.filename))

    # Unique input path with the suffix from the secured filename
    with tempfile.NamedTemporaryFile(
        delete=False, suffix=safe_file_name.suffix, dir=UPLOAD_DIR
    ) as tmp_input_file:
        input_path = Path(tmp_input_file.name)
        shutil.copyfileobj(file.file, tmp_input_file)

    # Output file lives next to the input in the upload directory
    output_filename = f"{safe_file_name.stem}.{output_ext}"
    output_path = input_path.with_name(f"{input_path.stem}-{output_filename}")

    try:
        async with CONVERSION_SEMAPHORE:
            logger.debug(f"Acquired semaphore for {safe_file_name}. Running conversion.")
            # Run conversion in a thread pool to avoid blocking the event loop
            await run_in_threadpool(conversion, input_path, output_path)
            logger.debug(f"Conversion OK for {safe_file_name}. Releasing semaphore.")
    except (MalformedDocumentError, CatalogSchemaError, InvalidCatalogError) as e:
        _cleanup_both(input_path, output_path)
        logger.warning(f"Rejected {safe_file_name}: {e}")
        return JSONResponse(status_code=422, content={"detail": str(e)})
    except Exception as e:
        _cleanup_both(input_path, output_path)
        logger.error(f"Error processing file {safe_file_name}: {e}")
        return JSONResponse(
            status_code=500, content={"detail": f"Conversion failed ({e})"}
        )

    if not output_path.exists():
        _cleanup_both(input_path, output_path)
        logger.error(f"Conversion failed: Output file {output_path} not found.")
        raise HTTPException(
            status_code=500,
            detail="Conversion failed because no output file created.",
        )

    # Schedule cleanup for BOTH input and output files using BackgroundTasks
    cleanup_tasks = BackgroundTasks()
    cleanup_tasks.add_task(cleanup_file, file_path=input_path)
    cleanup_tasks.add_task(cleanup_file, file_path=output_path)

    return FileResponse(
        path=str(output_path),
        filename=output_filename,
        media_type=media_type,
        background=cleanup_tasks,
    )


def _cleanup_both(input_path: Path, output_path: Path):
    cleanup_file(input_path)
    cleanup_file(output_path)


def cleanup_file(file_path: Path):
    try:
        if file_path and file_path.exists():
            os.remove(file_path)
            logger.debug(f"Cleaned up temporary file: {file_path}")
    except OSError as e:
        # Log error but don't raise to avoid crashing background task
        logger.error(f"Error cleaning up file {file_path}: {e}")


if __name__ == "__main__":
    uvicorn.run(
        "main:app", host="localhost", port=5000, reload=True
    )  # This is for local testing
