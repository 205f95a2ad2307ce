"""Excel user-name enrichment

Reads Clerk user IDs from a column of the first worksheet, resolves each to a
display name through the worker pool and writes the names into a new trailing
"User Name" column of a copy of the workbook.
"""

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Union

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from .clerk_client import ClerkClient, ClerkError, placeholder_name
from .models import RunStatistics, ScanStatistics, UserEntry, WorkResult
from .worker_pool import BoundedWorkerPool

logger = logging.getLogger(__name__)

USER_ID_COLUMN = 5
BATCH_SIZE = 10
HEADER_TITLE = "User Name"
OUTPUT_SUFFIX = "_updated"
SUPPORTED_EXTENSIONS = ('.xlsx', '.xlsm')


class ExcelFileError(Exception):
    pass


def validate_file(file_path: Union[str, Path]) -> Path:
    path = Path(file_path)
    if not path.exists() or path.is_dir():
        raise ExcelFileError(f"File not found or is a directory: {path}")

    ext = path.suffix.lower()
    if ext == '.xls':
        raise ExcelFileError(f"Legacy .xls workbooks are not supported, save {path.name} as .xlsx first")
    if ext not in SUPPORTED_EXTENSIONS:
        raise ExcelFileError(f"File must be an Excel workbook ({', '.join(SUPPORTED_EXTENSIONS)}): {path}")
    return path


def output_path_for(file_path: Union[str, Path], suffix: str = OUTPUT_SUFFIX) -> Path:
    path = Path(file_path)
    return path.with_name(f"{path.stem}{suffix}{path.suffix}")


@dataclass
class ExcelReport:
    output_path: Path
    statistics: RunStatistics
    scan: ScanStatistics
    interrupted: bool = False


class UsernameExcelProcessor:
    def __init__(
        self,
        clerk_client: ClerkClient,
        user_id_column: int = USER_ID_COLUMN,
        max_workers: int = BATCH_SIZE,
        header_title: str = HEADER_TITLE,
        output_suffix: str = OUTPUT_SUFFIX,
    ):
        if user_id_column < 1:
            raise ValueError(f"user_id_column is 1-based, got {user_id_column}")
        self.clerk_client = clerk_client
        self.user_id_column = user_id_column
        self.header_title = header_title
        self.output_suffix = output_suffix
        self.pool = BoundedWorkerPool(max_workers, name="clerk")
        self.scan = ScanStatistics()

    def iter_entries(self, sheet) -> Iterator[UserEntry]:
        rows = sheet.iter_rows(min_row=2, max_col=self.user_id_column, values_only=True)
        for row_number, row in enumerate(rows, start=2):
            value = row[self.user_id_column - 1] if len(row) >= self.user_id_column else None
            user_id = str(value).strip() if value is not None else ''
            if not user_id:
                self.scan.skipped_rows += 1
                continue
            self.scan.scanned += 1
            self.scan.queued += 1
            yield UserEntry(row=row_number, user_id=user_id)

    def resolve(self, entry: UserEntry) -> WorkResult:
        try:
            name = self.clerk_client.fetch_user_name(entry.user_id)
        except ClerkError as e:
            logger.warning(f"⚠️  Failed to fetch {entry.user_id}: {e}")
            return WorkResult.failed(entry, str(e), value=placeholder_name(entry.user_id))
        return WorkResult.ok(entry, name)

    def process(self, file_path: Union[str, Path]) -> ExcelReport:
        path = validate_file(file_path)

        try:
            workbook = openpyxl.load_workbook(path, keep_vba=path.suffix.lower() == '.xlsm')
        except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError) as e:
            raise ExcelFileError(f"Could not open workbook {path}: {e}") from e

        sheet = workbook.worksheets[0]
        name_column = sheet.max_column + 1
        sheet.cell(row=1, column=name_column, value=self.header_title)

        self.scan = ScanStatistics()
        statistics = RunStatistics()

        def apply_result(result: WorkResult):
            entry = result.item
            name = result.value if result.value else placeholder_name(entry.user_id)
            sheet.cell(row=entry.row, column=name_column, value=name)
            statistics.record(result)

        logger.info(f"📋 Resolving user names from '{sheet.title}' column {self.user_id_column} "
                    f"({self.pool.max_workers} concurrent requests)")
        summary = self.pool.run(self.iter_entries(sheet), self.resolve, apply_result)

        output_path = output_path_for(path, self.output_suffix)
        try:
            workbook.save(output_path)
        except OSError as e:
            raise ExcelFileError(f"Could not save workbook {output_path}: {e}") from e
        finally:
            workbook.close()

        if summary.source_error is not None:
            raise ExcelFileError(
                f"Reading rows failed, partial results saved to {output_path}: {summary.source_error}"
            ) from summary.source_error

        if summary.interrupted:
            logger.warning(f"⚠️  Partial results saved to {output_path}")
        else:
            logger.info(f"✅ Processing complete! Updated file saved as: {output_path}")
        return ExcelReport(
            output_path=output_path,
            statistics=statistics,
            scan=self.scan,
            interrupted=summary.interrupted,
        )
