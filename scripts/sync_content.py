import os
import sys

# Ensure src is in pythonpath
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from dotenv import load_dotenv
load_dotenv()

from site_content.config import ConfigurationError, get_settings
from site_content.content import ContentError, clone_or_pull, load_from_dir
from site_content.logging_setup import configure_logging


def main() -> int:
    try:
        settings = get_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 2

    configure_logging(settings.log_level, settings.log_json)
    sync_config = settings.sync_config()

    # 1. Mirror
    print(f"Syncing {sync_config.repo_url} ({sync_config.branch}) into {sync_config.directory}...")
    try:
        result = clone_or_pull(sync_config)
    except ContentError as e:
        print(f"Sync failed: {e}")
        return 1
    print(f"Sync status: {result.status.value} at {result.revision[:12]}")

    # 2. Load
    print("Loading content...")
    try:
        snapshot = load_from_dir(sync_config.directory, revision=result.revision)
    except ContentError as e:
        print(f"Load failed: {e}")
        return 1

    print(f"Posts:    {len(snapshot.posts)}")
    for post in snapshot.posts:
        date = post.date.date().isoformat() if post.date else "(undated)"
        print(f"  {date}  {post.slug}")
    print(f"Projects: {len(snapshot.projects)}")
    print(f"Tags:     {', '.join(snapshot.tags) or '(none)'}")
    print(f"Resume:   {'yes' if snapshot.resume else 'no'}")
    print("Done! Content is valid.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
