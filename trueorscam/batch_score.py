"""
Score a file of inputs (one URL or claim per line) and write the results as JSON.

    python -m trueorscam.batch_score inputs.txt -o scored.json --context "from SMS"
"""
import argparse
import json
import logging
import sys

from tqdm import tqdm

from trueorscam.detection.cache import ResponseCache
from trueorscam.detection.config import settings
from trueorscam.detection.engine import detect_input
from trueorscam.detection.inference import GeminiClient

logger = logging.getLogger(__name__)


def read_inputs(path):
    with open(path, "r", encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip()]


def score_items(items, context=None, cfg=None, client=None, progress=True):
    cfg = cfg or settings
    client = client or GeminiClient.from_settings(cfg)
    cache = ResponseCache(ttl=cfg.cache_ttl)

    scored = []
    for item in tqdm(items, desc="Scoring items", disable=not progress):
        try:
            result = detect_input(item, context, cfg, client, cache)
        except Exception as e:
            logger.warning("Error scoring %r: %s", item, e)
            scored.append({"input": item, "error": str(e)})
            continue
        scored.append({"input": item, "result": result})
    return scored


def main(argv=None):
    parser = argparse.ArgumentParser(description="Batch scam/claim scoring")
    parser.add_argument("inputs", help="text file, one input per line")
    parser.add_argument("-o", "--output", help="write JSON here instead of stdout")
    parser.add_argument("--context", default=None)
    parser.add_argument("--no-progress", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(levelname)s - %(message)s")

    items = read_inputs(args.inputs)
    if not items:
        logger.warning("Nothing to score in %s", args.inputs)
    scored = score_items(items, context=args.context, progress=not args.no_progress)

    out = json.dumps(scored, indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(out)
        logger.info("Scored %d items -> %s", len(scored), args.output)
    else:
        sys.stdout.write(out + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
