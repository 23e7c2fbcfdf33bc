import json
import sys

from bindbridge import logging as bindbridge_logging
from bindbridge import utils
from bindbridge.conversion import ParseResults, TypeDatabase, convert_declarations
from bindbridge.data_types import UnsafePolicy
from bindbridge.decls import load_declarations


logger = bindbridge_logging.get_logger(__name__)


class BindBridge:
    """Runs one conversion from a declaration file to the hand-off JSON."""

    def __init__(
        self,
        input_file: str,
        output_file: str | None = None,
        config_file: str | None = None,
        unsafe_policy: UnsafePolicy | None = None,
        exclude_utilities: bool | None = None,
    ):
        self.input_file = input_file
        self.output_file = output_file
        self.config = utils.try_load_config(config_file)

        conversion_cfg = self.config.get("conversion", {})
        if unsafe_policy is None:
            unsafe_policy = UnsafePolicy(conversion_cfg.get("unsafe_policy", UnsafePolicy.ALL_FUNCTIONS_SAFE.value))
        self.unsafe_policy = unsafe_policy
        if exclude_utilities is None:
            exclude_utilities = conversion_cfg.get("exclude_utilities", False)
        self.exclude_utilities = exclude_utilities
        self.indent = self.config.get("output", {}).get("indent", 2)

        logger.debug("Effective config: %s", json.dumps(self.config))

    def convert(self) -> ParseResults:
        items = load_declarations(self.input_file)
        logger.info("Loaded %d top-level declarations from %s", len(items), self.input_file)
        type_database = TypeDatabase.from_config(self.config)
        return convert_declarations(
            items,
            type_database,
            unsafe_policy=self.unsafe_policy,
            exclude_utilities=self.exclude_utilities,
        )

    def run(self) -> ParseResults:
        results = self.convert()
        payload = results.to_dict()
        if self.output_file:
            utils.save_json(self.output_file, payload, indent=self.indent)
            logger.info("Wrote %d APIs to %s", len(results.apis), self.output_file)
        else:
            json.dump(payload, sys.stdout, indent=self.indent, ensure_ascii=False)
            sys.stdout.write("\n")
        return results
