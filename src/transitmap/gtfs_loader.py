"""GTFS static feed reader."""

import io
import logging
import zipfile
from pathlib import Path
from typing import Dict, IO, List, Union

import pandas as pd
import requests

logger = logging.getLogger(__name__)

# Feed tables used by the schedule index, in load order
GTFS_TABLES = ("stops", "routes", "trips", "stop_times", "shapes", "calendar", "calendar_dates")

DEFAULT_TIMEOUT = 60

Tables = Dict[str, List[Dict[str, str]]]


class GTFSLoader:
    """Reads the raw GTFS tables of a feed into lists of string rows."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the loader.

        Args:
            timeout: Seconds to wait for the feed server when downloading.
        """
        self.timeout = timeout

    def load_from_url(self, url: str) -> Tables:
        """Download a zipped GTFS feed and read its tables."""
        logger.info(f"Downloading GTFS data from {url}")
        try:
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to download GTFS data: {e}")
            raise
        return self._load_zip(io.BytesIO(response.content))

    def load_from_zip(self, path: Union[str, Path]) -> Tables:
        """Read the tables of a zipped GTFS feed on disk."""
        logger.info(f"Loading GTFS data from {path}")
        with open(path, "rb") as f:
            return self._load_zip(f)

    def load_from_directory(self, path: Union[str, Path]) -> Tables:
        """Read the tables of an unzipped GTFS feed directory."""
        directory = Path(path)
        if not directory.is_dir():
            raise FileNotFoundError(f"GTFS directory not found: {directory}")

        logger.info(f"Loading GTFS data from {directory}")
        tables: Tables = {}
        for name in GTFS_TABLES:
            file = directory / f"{name}.txt"
            if not file.exists():
                logger.warning(f"{file.name} not found in {directory}")
                continue
            with open(file, "rb") as f:
                tables[name] = self._read_table(f)
        self._log_counts(tables)
        return tables

    def _load_zip(self, source: IO[bytes]) -> Tables:
        tables: Tables = {}
        try:
            with zipfile.ZipFile(source) as zip_file:
                # Some feeds nest the files inside a folder
                members = {Path(member).name: member for member in zip_file.namelist()}
                for name in GTFS_TABLES:
                    member = members.get(f"{name}.txt")
                    if member is None:
                        logger.warning(f"{name}.txt not found in feed archive")
                        continue
                    with zip_file.open(member) as f:
                        tables[name] = self._read_table(f)
        except zipfile.BadZipFile as e:
            logger.error(f"Failed to read GTFS archive: {e}")
            raise
        self._log_counts(tables)
        return tables

    @staticmethod
    def _read_table(source: IO[bytes]) -> List[Dict[str, str]]:
        """Parse one CSV table, keeping every value as a string."""
        try:
            frame = pd.read_csv(source, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        except pd.errors.EmptyDataError:
            return []
        frame.columns = [str(column).strip() for column in frame.columns]
        return frame.to_dict("records")

    @staticmethod
    def _log_counts(tables: Tables) -> None:
        counts = ", ".join(f"{len(rows)} {name}" for name, rows in tables.items())
        logger.info(f"Loaded GTFS tables: {counts}")
