"""Command line entry point."""

import argparse
import asyncio
import sys
from typing import List, Optional

import httpx

from .config import Settings, settings
from .core.exceptions import MultipartUploadError
from .services.upload_service import create_upload_service
from .utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpart-upload",
        description="Upload a file to S3 using concurrent multipart upload",
    )
    parser.add_argument("file", help="Local file to upload")
    parser.add_argument("--key", help="Object key (default: [S3_KEY_PREFIX/]file name)")
    parser.add_argument("--bucket", help="Target bucket (S3_BUCKET_NAME)")
    parser.add_argument("--region", help="AWS region (AWS_REGION)")
    parser.add_argument("--endpoint-url", help="S3-compatible endpoint (S3_ENDPOINT_URL)")
    parser.add_argument("--content-type", help="Object content type (default: guessed)")
    parser.add_argument("--part-size", type=int, help="Part size in bytes, 0 for automatic (PART_SIZE)")
    parser.add_argument("--concurrency", type=int, help="Parallel part uploads (MAX_CONCURRENCY)")
    parser.add_argument("--max-retries", type=int, help="Retries per part (MAX_RETRIES)")
    parser.add_argument(
        "--presigned",
        action="store_true",
        help="Upload parts through presigned URLs (AUTH_MODE=presigned)",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop dispatching parts after the first failure (FAIL_FAST)",
    )
    return parser


def build_settings(args: argparse.Namespace) -> Settings:
    """Overlay command line options on the environment settings."""
    overrides = {
        "s3_bucket_name": args.bucket,
        "aws_region": args.region,
        "s3_endpoint_url": args.endpoint_url,
        "part_size": args.part_size,
        "max_concurrency": args.concurrency,
        "max_retries": args.max_retries,
    }
    if args.presigned:
        overrides["auth_mode"] = "presigned"
    if args.fail_fast:
        overrides["fail_fast"] = True

    data = settings.model_dump()
    data.update({name: value for name, value in overrides.items() if value is not None})
    # Re-validate so command line values get the same checks as the environment
    return Settings.model_validate(data)


async def upload(args: argparse.Namespace, config: Settings) -> int:
    timeout = httpx.Timeout(config.request_timeout_seconds)
    async with httpx.AsyncClient(timeout=timeout) as client:
        service = create_upload_service(client, config)
        try:
            result = await service.upload_file(
                args.file, key=args.key, content_type=args.content_type
            )
        except MultipartUploadError as e:
            logger.error(
                "Upload failed",
                phase=e.phase.value,
                part_number=e.part_number,
                status_code=e.status_code,
                error=str(e),
            )
            return 1

    print(result.model_dump_json(indent=2))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    try:
        config = build_settings(args)
        return asyncio.run(upload(args, config))
    except (ValueError, OSError) as e:
        logger.error("Upload failed", error=str(e))
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
