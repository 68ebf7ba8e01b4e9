"""
Table extraction backend built on camelot.

Runs camelot with both the ``lattice`` and ``stream`` flavors, filters out
tables that are clearly not line-item tables (bank details, address blocks,
duplicates) and keeps the better scored set. The result is a JSON-friendly
dict::

    {"tables": [{"page", "method", "table_number", "shape", "data", "headers"}],
     "total_found": 2, "method": "stream"}

camelot is slow and can hang on malformed documents, so callers run it in a
child process through :func:`run_table_backend`; ``python -m
extraction.table_backend file.pdf`` prints the dict as JSON.
"""

import json
import logging
import re
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .exceptions import TableExtractionError


logger = logging.getLogger(__name__)

BACKEND_NAME = 'camelot'

LINE_ITEM_INDICATORS = (
    'DESCRIPTION', 'DESCRIPCI', 'LIBELL', 'DÉSIGNATION', 'DESIGNATION', 'ITEM', 'SKU',
    'CODE', 'RÉF', 'QTY', 'QUANT', 'QTÉ', 'CANTIDAD', 'PRICE', 'PREZZO', 'PRECIO', 'PRIX',
    'UNIT', 'AMOUNT', 'IMPORTE', 'MONTANT', 'TOTAL',
)

NOISE_INDICATORS = (
    'IBAN', 'BIC', 'SWIFT', 'BANK', 'BANQUE', 'BANCA', 'WWW.', 'HTTP', '@', 'TEL', 'FAX',
    'SIRET', 'CAPITAL SOCIAL', 'P.IVA', 'PARTITA IVA', 'VAT NUMBER', 'RCS',
)

GARBAGE_INDICATORS = (
    'IBAN', 'CONDITIONS GÉNÉRALES', 'TERMS AND CONDITIONS', 'CAPITAL SOCIAL',
)

PRODUCT_CODE_RE = re.compile(r'\b[A-Z]{2,4}\d{3,}\w*\b')
AMOUNT_RE = re.compile(r'\b\d+[.,]\d{2,4}\b')


def _table_text(df: pd.DataFrame) -> str:
    return ' '.join(df.astype(str).values.flatten()).upper()


def is_garbage_table(df: pd.DataFrame) -> bool:
    """
    Determine if a table is garbage (address block, bank details, free text).

    Tables of two rows are kept: some layouts put every item of the page in
    a single multi-line row under the header.
    """
    rows, cols = df.shape
    if rows < 2 or cols < 3:
        return True

    non_empty_cells = (df.notna() & (df.astype(str).apply(lambda col: col.str.strip()) != '')).sum().sum()
    if non_empty_cells < rows * cols * 0.3:
        return True

    text_content = _table_text(df)
    if any(indicator in text_content for indicator in GARBAGE_INDICATORS):
        return True

    has_line_items = any(word in text_content for word in LINE_ITEM_INDICATORS)
    if rows > 10 and not has_line_items and not PRODUCT_CODE_RE.search(text_content):
        return True
    return False


def score_table_content(df: pd.DataFrame) -> int:
    """Score line-item signals: column labels, product codes and amounts."""
    text_content = _table_text(df)
    score = sum(25 for indicator in LINE_ITEM_INDICATORS if indicator in text_content)
    score += min(len(PRODUCT_CODE_RE.findall(text_content)) * 10, 100)
    score += min(len(AMOUNT_RE.findall(text_content)) * 3, 50)
    return score


def noise_penalty(df: pd.DataFrame) -> int:
    text_content = _table_text(df)
    penalty = sum(25 for indicator in NOISE_INDICATORS if indicator in text_content)

    empty_cells = df.isna().sum().sum() + (df.astype(str).apply(lambda col: col.str.strip()) == '').sum().sum()
    if df.size and empty_cells / df.size > 0.5:
        penalty += 50
    return penalty


def score_table(df: pd.DataFrame) -> float:
    """
    Score one table; zero means reject.

    Args:
        df: pandas DataFrame of the table

    Returns:
        Quality score (higher is better)
    """
    if is_garbage_table(df):
        return 0

    rows, cols = df.shape
    col_score = min(cols * 10, 100)
    row_score = min(rows * 2, 50)
    if cols < 3:
        col_score *= 0.1
    structure_bonus = 20 if 4 <= cols <= 15 and 2 <= rows <= 100 else 0

    total = col_score + row_score + score_table_content(df) + structure_bonus - noise_penalty(df)
    return max(0, total)


def tables_are_similar(df1: pd.DataFrame, df2: pd.DataFrame, similarity_threshold: float = 0.7) -> bool:
    """Two tables are duplicates when their word sets overlap by the threshold (Jaccard)."""
    if abs(df1.shape[0] - df2.shape[0]) > 10:
        return False
    words1 = set(_table_text(df1).split())
    words2 = set(_table_text(df2).split())
    if not words1 or not words2:
        return False
    return len(words1 & words2) / len(words1 | words2) >= similarity_threshold


def filter_and_deduplicate(tables: Sequence[Any]) -> List[Tuple[Any, float]]:
    """
    Drop garbage tables and near duplicates, keeping the best scored copy.

    Args:
        tables: camelot tables (anything with a ``df`` attribute)

    Returns:
        (table, score) pairs, best first
    """
    scored = []
    rejected = 0
    for table in tables:
        try:
            score = score_table(table.df)
        except (ValueError, TypeError, AttributeError) as e:
            logger.debug(f"[TABLES] Rejected table due to error: {e}")
            rejected += 1
            continue
        if score > 0:
            scored.append((table, score))
        else:
            rejected += 1
    if rejected:
        logger.info(f"[TABLES] Rejected {rejected} garbage/low-quality tables")

    scored.sort(key=lambda pair: pair[1], reverse=True)
    kept: List[Tuple[Any, float]] = []
    for table, score in scored:
        if not any(tables_are_similar(table.df, other.df) for other, _ in kept):
            kept.append((table, score))
    if len(kept) != len(scored):
        logger.info(f"[TABLES] Removed {len(scored) - len(kept)} duplicate tables")
    return kept


def choose_best_tables(lattice_tables: Sequence[Any],
                       stream_tables: Sequence[Any]) -> Tuple[str, List[Any]]:
    """Pick the flavor whose filtered tables score higher; lattice wins ties."""
    lattice = filter_and_deduplicate(lattice_tables)
    stream = filter_and_deduplicate(stream_tables)
    lattice_score = sum(score for _, score in lattice)
    stream_score = sum(score for _, score in stream)

    if not lattice and not stream:
        return 'none', []
    if stream_score > lattice_score:
        logger.info(f"[TABLES] Using stream results (score: {stream_score} vs lattice: {lattice_score})")
        return 'stream', [table for table, _ in stream]
    logger.info(f"[TABLES] Using lattice results (score: {lattice_score} vs stream: {stream_score})")
    return 'lattice', [table for table, _ in lattice]


def dataframe_rows(df: pd.DataFrame) -> List[List[str]]:
    """Cells as stripped strings; rows without any text are dropped."""
    rows = []
    for _, row in df.iterrows():
        cleaned = [str(cell).strip() if pd.notna(cell) else '' for cell in row]
        if any(cleaned):
            rows.append(cleaned)
    return rows


def _read_flavor(pdf_path: Path, flavor: str) -> List[Any]:
    import camelot

    try:
        logger.info(f"[TABLES] Attempting camelot {flavor} method...")
        tables = list(camelot.read_pdf(str(pdf_path), flavor=flavor, pages='all'))
        logger.info(f"[TABLES] {flavor.capitalize()} method found {len(tables)} tables")
        return tables
    except Exception as e:
        logger.error(f"[TABLES] Camelot {flavor} method failed: {e}")
        return []


def extract_tables(pdf_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Extract candidate line-item tables from every page of the PDF.

    Raises:
        TableExtractionError: If the file does not exist
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.is_file():
        raise TableExtractionError(f"PDF file not found: {pdf_path}", pdf_path=str(pdf_path),
                                   backend=BACKEND_NAME)

    method, selected = choose_best_tables(_read_flavor(pdf_path, 'lattice'),
                                          _read_flavor(pdf_path, 'stream'))
    tables = []
    for number, table in enumerate(selected, 1):
        rows = dataframe_rows(table.df)
        if not rows:
            logger.warning(f"[TABLES] Table {number} had no valid rows after cleaning")
            continue
        tables.append({
            'page': getattr(table, 'page', None),
            'method': method,
            'table_number': number,
            'shape': [len(rows), max(len(row) for row in rows)],
            'data': rows,
            'headers': rows[0],
        })
        logger.info(f"[TABLES] Table {number}: {len(rows)} rows, headers {rows[0]}")

    return {'tables': tables, 'total_found': len(tables), 'method': method}


def run_table_backend(pdf_path: Union[str, Path], timeout: Optional[float] = 120.0) -> Dict[str, Any]:
    """
    Run :func:`extract_tables` in a child process.

    Args:
        pdf_path: PDF to read
        timeout: Seconds before the child process is killed

    Returns:
        The backend's result dict

    Raises:
        TableExtractionError: On timeout, non-zero exit, invalid JSON or an
            ``error`` field in the output
    """
    command = [sys.executable, '-m', 'extraction.table_backend', str(pdf_path)]
    project_root = Path(__file__).resolve().parent.parent
    logger.info(f"[TABLES] Running table backend for {pdf_path} (timeout {timeout}s)")

    try:
        completed = subprocess.run(command, capture_output=True, text=True,
                                   timeout=timeout, cwd=str(project_root))
    except subprocess.TimeoutExpired as e:
        raise TableExtractionError(f"Table extraction timed out after {timeout}s",
                                   pdf_path=str(pdf_path), backend=BACKEND_NAME) from e
    except OSError as e:
        raise TableExtractionError(f"Could not start table backend: {e}",
                                   pdf_path=str(pdf_path), backend=BACKEND_NAME) from e

    try:
        result = json.loads(completed.stdout) if completed.stdout.strip() else None
    except json.JSONDecodeError as e:
        raise TableExtractionError(f"Table backend returned invalid JSON: {e}",
                                   pdf_path=str(pdf_path), backend=BACKEND_NAME,
                                   stderr=completed.stderr) from e

    if isinstance(result, dict) and result.get('error'):
        raise TableExtractionError(f"Table backend error: {result['error']}",
                                   pdf_path=str(pdf_path), backend=BACKEND_NAME,
                                   stderr=completed.stderr)
    if completed.returncode != 0:
        raise TableExtractionError(f"Table backend exited with code {completed.returncode}",
                                   pdf_path=str(pdf_path), backend=BACKEND_NAME,
                                   stderr=completed.stderr)
    if not isinstance(result, dict):
        raise TableExtractionError("Table backend returned no result",
                                   pdf_path=str(pdf_path), backend=BACKEND_NAME,
                                   stderr=completed.stderr)
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr,
                        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    if len(args) != 1:
        print(json.dumps({'error': 'usage: python -m extraction.table_backend FILE.pdf'}))
        return 2
    try:
        result = extract_tables(args[0])
    except Exception as e:
        print(json.dumps({'error': str(e)}))
        return 1
    print(json.dumps(result, ensure_ascii=False, default=str))
    return 0


if __name__ == '__main__':
    sys.exit(main())
