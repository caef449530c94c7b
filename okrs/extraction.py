"""
Spreadsheet import for the OKR creation form.

Reads the first worksheet of an uploaded .xlsx (or legacy .xls) file and
pre-fills a draft from its second row. The first row is treated as a header.

Data row layout:
- Column 0: title
- Column 1: description
- Column 2: objective
- Column 3: quarter
- Column 4: year
- Columns 5+: key results as (description, target) pairs

Empty cells leave the matching draft field alone. Key results found in the
sheet replace the draft's list as a whole; a sheet with no complete pair
keeps the draft's list.
"""
import io
import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Tuple, Union

import openpyxl
import xlrd

from .exceptions import ExtractionError

logger = logging.getLogger(__name__)

TITLE_COL = 0
DESCRIPTION_COL = 1
OBJECTIVE_COL = 2
QUARTER_COL = 3
YEAR_COL = 4
KEY_RESULTS_START_COL = 5

DEFAULT_CURRENT = '0'

# OLE2 compound document header used by legacy .xls workbooks
XLS_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

Cell = Union[str, int, float, bool, datetime, date, time, None]
Year = Union[int, float, str, None]


@dataclass(frozen=True)
class KeyResult:
    description: str
    target: str
    current: str = DEFAULT_CURRENT

    def to_dict(self) -> Dict[str, str]:
        return {'description': self.description, 'target': self.target, 'current': self.current}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'KeyResult':
        current = data.get('current')
        return cls(
            description=_as_text(data.get('description')),
            target=_as_text(data.get('target')),
            current=DEFAULT_CURRENT if current in (None, '') else _as_text(current),
        )


def _blank_key_results() -> Tuple[KeyResult, ...]:
    return (KeyResult(description='', target=''),)


@dataclass(frozen=True)
class OKRDraft:
    """Unsaved state of the OKR creation form."""

    title: str = ''
    description: str = ''
    objective: str = ''
    quarter: str = ''
    year: Year = None
    key_results: Tuple[KeyResult, ...] = field(default_factory=_blank_key_results)

    @classmethod
    def empty(cls, year: Optional[int] = None) -> 'OKRDraft':
        """The form as it first appears: blank fields, one blank key result."""
        return cls(year=year)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], year: Optional[int] = None) -> 'OKRDraft':
        """Build a draft from posted form state. Missing fields fall back to the empty form."""
        if not data:
            return cls.empty(year=year)

        key_results = data.get('key_results')
        if isinstance(key_results, list):
            parsed = tuple(KeyResult.from_dict(kr) for kr in key_results if isinstance(kr, dict))
        else:
            parsed = _blank_key_results()

        return cls(
            title=_as_text(data.get('title')),
            description=_as_text(data.get('description')),
            objective=_as_text(data.get('objective')),
            quarter=_as_text(data.get('quarter')),
            year=data.get('year', year),
            key_results=parsed,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'description': self.description,
            'objective': self.objective,
            'quarter': self.quarter,
            'year': self.year,
            'key_results': [kr.to_dict() for kr in self.key_results],
        }


def _as_text(value: Any) -> str:
    if value is None:
        return ''
    return value if isinstance(value, str) else cell_text(value)


def is_present(cell: Cell) -> bool:
    """A cell counts as filled unless it is absent or an empty string."""
    return cell is not None and cell != ''


def cell_text(cell: Cell) -> str:
    """Render a cell the way it reads in the sheet (100.0 -> '100')."""
    if isinstance(cell, bool):
        return 'TRUE' if cell else 'FALSE'
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    if isinstance(cell, (datetime, date, time)):
        return cell.isoformat()
    return str(cell)


def cell_number(cell: Cell) -> Year:
    """
    Parse a cell as a number.

    Integral values come back as int. Text that is not a number is returned
    unchanged so that validation can report it instead of silently dropping it.
    """
    if isinstance(cell, bool):
        return int(cell)
    if isinstance(cell, int):
        return cell
    if isinstance(cell, float):
        return int(cell) if cell.is_integer() else cell
    text = cell_text(cell).strip()
    try:
        number = float(text)
    except ValueError:
        return text
    if number.is_integer():
        return int(number)
    return number


def read_grid(data: bytes) -> List[List[Cell]]:
    """
    Read the first worksheet of an .xlsx or legacy .xls payload into a list of rows.

    Raises:
        ExtractionError: If the payload is not a readable workbook.
    """
    if not data:
        raise ExtractionError('Uploaded file is empty.')

    if data.startswith(XLS_SIGNATURE):
        return _read_xls_grid(data)

    try:
        workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as e:
        logger.warning(f"Could not open uploaded spreadsheet: {e}")
        raise ExtractionError() from e

    try:
        worksheet = workbook.worksheets[0]
        # Stored dimensions can be stale; read until the sheet runs out.
        worksheet.reset_dimensions()
        return [list(row) for row in worksheet.iter_rows(min_row=1, min_col=1, values_only=True)]
    except Exception as e:
        logger.warning(f"Could not read first worksheet: {e}")
        raise ExtractionError() from e
    finally:
        workbook.close()


def _xls_value(cell, datemode) -> Cell:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    return cell.value


def _read_xls_grid(data: bytes) -> List[List[Cell]]:
    try:
        book = xlrd.open_workbook(file_contents=data, on_demand=True)
    except Exception as e:
        logger.warning(f"Could not open uploaded .xls spreadsheet: {e}")
        raise ExtractionError() from e

    try:
        sheet = book.sheet_by_index(0)
        return [
            [_xls_value(cell, book.datemode) for cell in sheet.row(index)]
            for index in range(sheet.nrows)
        ]
    except Exception as e:
        logger.warning(f"Could not read first .xls worksheet: {e}")
        raise ExtractionError() from e
    finally:
        book.release_resources()


def extract_key_results(row: List[Cell]) -> List[KeyResult]:
    """Collect every complete (description, target) pair from column 5 onward."""
    key_results = []
    for i in range(KEY_RESULTS_START_COL, len(row), 2):
        description = row[i]
        target = row[i + 1] if i + 1 < len(row) else None
        if is_present(description) and is_present(target):
            key_results.append(KeyResult(
                description=cell_text(description),
                target=cell_text(target),
            ))
    return key_results


def apply_row(draft: OKRDraft, grid: List[List[Cell]]) -> OKRDraft:
    """Return ``draft`` updated from the data row of ``grid``."""
    if len(grid) < 2:
        return draft

    row = list(grid[1])

    def cell(index):
        return row[index] if index < len(row) else None

    changes: Dict[str, Any] = {}
    for name, index in (
        ('title', TITLE_COL),
        ('description', DESCRIPTION_COL),
        ('objective', OBJECTIVE_COL),
        ('quarter', QUARTER_COL),
    ):
        if is_present(cell(index)):
            changes[name] = cell_text(cell(index))

    if is_present(cell(YEAR_COL)):
        changes['year'] = cell_number(cell(YEAR_COL))

    key_results = extract_key_results(row)
    if key_results:
        changes['key_results'] = tuple(key_results)

    return replace(draft, **changes)


def extract_draft(data: bytes, draft: Optional[OKRDraft] = None) -> OKRDraft:
    """
    Pre-fill ``draft`` from an uploaded spreadsheet.

    Raises:
        ExtractionError: If the file cannot be parsed. ``draft`` is not modified.
    """
    if draft is None:
        draft = OKRDraft.empty()
    grid = read_grid(data)
    result = apply_row(draft, grid)
    logger.info(f"Extracted draft from spreadsheet ({len(grid)} rows, {len(result.key_results)} key results)")
    return result
