"""GitHub Actions output and job summary writer."""

import os
from typing import Optional


class OutputService:
    """Appends step outputs and job summary lines to the workflow files."""

    def __init__(self, logger, output_file: Optional[str] = None, summary_file: Optional[str] = None):
        self.logger = logger
        self.output_file = output_file
        self.summary_file = summary_file

    def set_output(self, key: str, value):
        line = f"{key}={value}"
        if not self.output_file:
            self.logger.info("Output %s", line)
            return
        self._append(self.output_file, line)

    def add_summary(self, markdown: str):
        if not self.summary_file:
            self.logger.info("Summary: %s", markdown)
            return
        self._append(self.summary_file, markdown)

    @staticmethod
    def _append(path: str, line: str):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "a", encoding="utf-8") as file_obj:
            file_obj.write(f"{line}\n")
