"""FamTasks command line

Parses one task sentence and prints the result as JSON.

    python -m famtasks "לקחת את אלון לגן מחר בשעה 16:00"
"""

import argparse
import json
import sys
from typing import List, Optional

from .core.config_manager import ConfigManager
from .core.error_handler import ConfigurationError
from .core.logging_manager import LoggingManager
from .intelligence.ai_enhancer import AITaskEnhancer
from .intelligence.name_correction import correct_family_names
from .processors.task_parser import TaskParser


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="famtasks", description="FamTasks bilingual task parser")
    parser.add_argument("text", help="Task sentence to parse")
    parser.add_argument("--config", help="Configuration directory")
    parser.add_argument("--env", help="Environment name (development, testing, production)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Console log level")
    parser.add_argument("--ai", action="store_true", help="Enrich the parse with the local LLM")
    parser.add_argument("--correct-names", action="store_true",
                        help="Fix common speech-recognition name mistakes first")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the FamTasks command line."""
    args = build_arg_parser().parse_args(argv)

    try:
        config = ConfigManager(config_path=args.config, environment=args.env).load_config()
    except ConfigurationError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 2

    logging_config = config.logging
    if args.log_level:
        logging_config = logging_config.model_copy(update={"level": args.log_level})
    LoggingManager().configure(logging_config)

    text = correct_family_names(args.text) if args.correct_names else args.text
    parser = TaskParser(config)

    if args.ai:
        llm_config = config.llm.model_copy(update={"enabled": True})
        task = AITaskEnhancer(parser, llm_config).enhance(text)
    else:
        task = parser.parse(text)

    print(json.dumps(task.to_dict(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
