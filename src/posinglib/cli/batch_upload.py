"""
Batch upload of a local directory of reference images.

Usage:
    invoke -r src/posinglib/cli -c batch_upload batch-upload --directory ./refs \
        --head-count 4 --parents both --children kid:2
"""

import os
from dataclasses import replace

import structlog
from dotenv import load_dotenv
from invoke import Context, task

from posinglib.config import AppConfig, Config
from posinglib.error_handling import PosingLibError
from posinglib.models.photo import AGE_GROUPS, CountedChildTag, TagMetadata
from posinglib.services.auth import IdentityProvider
from posinglib.services.image_processor import ImageNormalizer
from posinglib.services.storage import DatabaseBackupService
from posinglib.services.store import PhotoStore
from posinglib.services.upload import UploadSession

logger = structlog.get_logger()

SUPPORTED_EXTENSIONS = [".jpg", ".jpeg", ".png", ".webp", ".heic", ".heif"]


def parse_children_option(value: str) -> list[CountedChildTag]:
    """
    Parse ``"kid:2,toddler"`` into counted child tags (count defaults to 1).

    Raises:
        ValueError: On an unknown age group or a count below 1
    """
    children: list[CountedChildTag] = []
    for item in filter(None, (part.strip() for part in value.split(","))):
        age_group, _, count = item.partition(":")
        if age_group not in AGE_GROUPS:
            raise ValueError(f"Unknown age group '{age_group}'. Expected one of {', '.join(AGE_GROUPS)}")
        child_count = int(count) if count else 1
        if child_count < 1:
            raise ValueError(f"Child count for '{age_group}' must be at least 1")
        children.append(CountedChildTag(age_group=age_group, count=child_count))
    return children


def find_image_files(directory: str, recursive: bool = False) -> list[str]:
    """Image files under ``directory``, sorted by path."""
    image_files = []
    if recursive:
        for root, _, files in os.walk(directory):
            for name in files:
                if os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
                    image_files.append(os.path.join(root, name))
    else:
        for name in os.listdir(directory):
            path = os.path.join(directory, name)
            if os.path.isfile(path) and os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
                image_files.append(path)
    return sorted(image_files)


def upload_files(
    session: UploadSession, store: PhotoStore, tags: TagMetadata, image_files: list[str]
) -> tuple[int, int]:
    """
    Upload files in batches of at most the session's batch size.

    A batch whose selection fails to normalize is skipped as a whole; images
    whose write fails are counted and dropped.

    Returns:
        tuple: (successful, failed) image counts
    """
    successful = 0
    failed = 0

    for start in range(0, len(image_files), session.max_batch_size):
        chunk = image_files[start : start + session.max_batch_size]
        files = []
        for file_path in chunk:
            with open(file_path, "rb") as f:
                files.append((os.path.basename(file_path), f.read()))

        session.reset()
        session.tags = replace(tags, children=list(tags.children))
        try:
            session.add_files(files)
        except PosingLibError as e:
            logger.error("batch_skipped", files=[name for name, _ in files], error=e.user_message)
            failed += len(files)
            continue

        result = session.confirm(store)
        successful += len(result.succeeded)
        failed += len(result.failed)
        logger.info("batch_uploaded", batch_start=start, message=result.user_message())

    session.reset()
    return successful, failed


@task
def batch_upload(
    c: Context,
    directory: str,
    user_id: str = "",
    head_count: int = 3,
    grandparents: str = "none",
    parents: str = "both",
    children: str = "",
    pets: int = 0,
    memo: str = "",
    env_file: str = ".env",
    recursive: bool = False,
    dry_run: bool = False,
):
    """
    Upload images from a local directory, tagging every image the same way.

    Args:
        c (Context): Invoke context.
        directory (str): Path to the directory containing images.
        user_id (str): Owner of the records. Default signs in with INITIAL_AUTH_TOKEN.
        head_count (int): Total people in the photos.
        grandparents (str): none, grandfather, grandmother or both.
        parents (str): none, mom, dad or both.
        children (str): Age groups with counts, e.g. "kid:2,toddler".
        pets (int): Number of pets.
        memo (str): Free-text memo.
        env_file (str): Path to the environment file. Default is '.env'.
        recursive (bool): Search for images in subdirectories. Default is False.
        dry_run (bool): If True, lists files to be processed without uploading. Default is False.
    """
    if os.path.exists(env_file):
        logger.info("env_file_loaded", env_file=env_file)
        load_dotenv(dotenv_path=env_file)
    else:
        logger.warning("env_file_not_found", env_file=env_file)

    if not os.path.isdir(directory):
        logger.error("directory_not_found", directory=directory)
        return

    try:
        tags = TagMetadata(
            head_count=head_count,
            grandparents=grandparents,
            parents=parents,
            children=parse_children_option(children),
            pet_count=pets,
            memo=memo,
        )
    except ValueError as e:
        logger.error("invalid_children_option", children=children, error=str(e))
        return

    problems = tags.validate()
    if problems:
        logger.error("invalid_tags", problems=problems)
        return

    image_files = find_image_files(directory, recursive)
    if not image_files:
        logger.warning("no_image_files_found", directory=directory)
        return

    logger.info("batch_upload_started", directory=directory, file_count=len(image_files), dry_run=dry_run)

    if dry_run:
        print("\n--- Dry Run Mode: Files to be processed ---")
        for file_path in image_files:
            print(f"- {file_path}")
        print("--- End of Dry Run ---")
        return

    config = AppConfig.from_env(Config())
    if not user_id:
        user_id = IdentityProvider(config).sign_in().user_id

    store = PhotoStore(config, user_id, backup=DatabaseBackupService.from_config(config))
    session = UploadSession(
        ImageNormalizer.from_config(config),
        max_batch_size=config.max_batch_size,
        write_workers=config.write_workers,
    )

    try:
        successful, failed = upload_files(session, store, tags, image_files)
    finally:
        store.close()

    logger.info("batch_upload_finished", user_id=user_id, successful=successful, failed=failed, total=len(image_files))
    print(f"\nBatch upload complete. Successful: {successful}, Failed: {failed}")
