"""Process a single episode video: extract, transcribe, embed and store."""

import argparse
import logging
import sys
import uuid
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import settings
from src.errors import PipelineError
from src.ingestion.models import Episode
from src.ingestion.pipeline import process_episode
from src.ingestion.storage import get_supabase_client
from src.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Process an episode video into searchable segments")
    parser.add_argument("video", help="Path to the source video file")
    parser.add_argument("--episode-id", default=None, help="Episode id (defaults to a new UUID)")
    parser.add_argument("--title", default=None, help="Episode title (defaults to the file name)")
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory for audio and thumbnails (defaults to <data_dir>/<episode-id>)",
    )
    parser.add_argument("--skip-transcription", action="store_true", help="Stop after media extraction")
    parser.add_argument("--skip-thumbnails", action="store_true", help="Do not generate thumbnails")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    video = Path(args.video)
    if not video.is_file():
        print(f"Video file not found: {video}")
        return 1

    episode_id = args.episode_id or str(uuid.uuid4())
    output_dir = args.output_dir or str(Path(settings.data_dir) / episode_id)
    episode = Episode(id=episode_id, file_path=str(video), title=args.title or video.stem)

    print(f"Processing episode {episode_id} from {video}")
    try:
        result = process_episode(
            episode,
            output_dir,
            get_supabase_client(),
            config=PipelineConfig.from_settings(settings),
            skip_transcription=args.skip_transcription,
            skip_thumbnails=args.skip_thumbnails,
        )
    except PipelineError as exc:
        print(f"Failed: {exc}")
        if exc.retryable:
            print("The failure looks transient; re-running may succeed.")
        return 1

    print(f"  Duration: {result.extraction.video.duration:.1f}s")
    print(f"  Audio: {result.extraction.audio_path}")
    print(f"  Thumbnails: {len(result.extraction.thumbnail_paths)}")
    if result.extraction.thumbnail_errors:
        print(f"  Thumbnail failures: {len(result.extraction.thumbnail_errors)}")
    if not args.skip_transcription:
        print(f"  Segments: {len(result.segments)}")
        print(f"  Embeddings stored: {len(result.embeddings)}")
    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
