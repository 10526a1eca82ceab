# Command-line scoring of a single water sample
import sys
import json
import logging
import argparse

from .config import configure_logging
from .errors import ConfigurationError, HMPIError
from .indices import compute_indices, describe_indices

logger = logging.getLogger(__name__)


def _parse_pairs(pairs):
    metals = {}
    for pair in pairs:
        metal, sep, value = pair.partition('=')
        if not sep:
            raise ValueError(f"Expected metal=value, got {pair!r}")
        try:
            metals[metal.strip().lower()] = float(value)
        except ValueError:
            metals[metal.strip().lower()] = value
    return metals


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='hmpi',
        description='Compute HPI, HEI and Cd for one water sample (concentrations in mg/L)')
    parser.add_argument('metals', nargs='*', help='metal=value pairs, e.g. lead=0.02')
    parser.add_argument('--json', dest='json_input', help='sample as a JSON object')
    parser.add_argument('--policy', choices=['reject', 'clamp'], help='handling of negative/NaN/non-numeric values')
    parser.add_argument('--describe', action='store_true', help='print index and limit reference data')
    parser.add_argument('--log-level', help='overrides HMPI_LOG_LEVEL')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if args.describe:
        print(json.dumps(describe_indices(), indent=2, ensure_ascii=False))
        return 0

    try:
        metals = json.loads(args.json_input) if args.json_input else {}
        if not isinstance(metals, dict):
            raise ValueError("--json must be an object")
        metals.update(_parse_pairs(args.metals))
        result = compute_indices(metals, args.policy)
    except (HMPIError, ValueError) as e:
        logger.debug("Scoring failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(result.as_dict()))
    return 0


if __name__ == '__main__':
    sys.exit(main())
