"""
Financial Statement Parser
Reads uploaded CSV, JSON and Excel statements into FinancialStatement objects.

Row labels are matched against English and Arabic keywords; each column
whose header looks like a fiscal year (2023, FY2024, 2023-24) becomes one
statement. Sheets without year columns yield a single statement built from
the first number on every matched row.
"""

import csv
import io
import json
import logging
import math
import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

from finclick.core.exceptions import StatementParseError
from finclick.core.utils import to_number
from finclick.data.statements import FinancialStatement, sort_statements

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.csv', '.json', '.xlsx', '.xlsm', '.xls')

# Ordered from most to least specific: the first matching entry wins.
LINE_ITEM_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ('total_current_assets', ('total current assets', 'إجمالي الأصول المتداولة', 'مجموع الأصول المتداولة')),
    ('total_non_current_assets', ('total non-current assets', 'total non current assets',
                                  'إجمالي الأصول غير المتداولة')),
    ('total_assets', ('total assets', 'إجمالي الأصول', 'مجموع الأصول')),
    ('total_current_liabilities', ('total current liabilities', 'إجمالي الخصوم المتداولة',
                                   'إجمالي الالتزامات المتداولة')),
    ('total_non_current_liabilities', ('total non-current liabilities', 'total non current liabilities',
                                       'إجمالي الالتزامات غير المتداولة')),
    ('total_liabilities', ('total liabilities', 'إجمالي الالتزامات', 'مجموع الخصوم', 'إجمالي الخصوم')),
    ('total_equity', ('total equity', "shareholders' equity", 'shareholders equity',
                      'حقوق المساهمين', 'إجمالي حقوق الملكية', 'حقوق الملكية')),
    ('operating_cash_flow', ('operating cash flow', 'cash from operating', 'operating activities',
                             'التدفق النقدي التشغيلي', 'الأنشطة التشغيلية')),
    ('investing_cash_flow', ('investing cash flow', 'investing activities', 'الأنشطة الاستثمارية')),
    ('financing_cash_flow', ('financing cash flow', 'financing activities', 'الأنشطة التمويلية')),
    ('capital_expenditures', ('capital expenditure', 'capex', 'purchase of property', 'النفقات الرأسمالية')),
    ('beginning_cash', ('beginning cash', 'cash at beginning', 'النقد في بداية')),
    ('ending_cash', ('ending cash', 'cash at end', 'النقد في نهاية')),
    ('dividends_paid', ('dividends paid', 'توزيعات مدفوعة', 'أرباح موزعة')),
    ('share_repurchases', ('repurchase', 'buyback', 'شراء أسهم الخزينة')),
    ('debt_issued', ('proceeds from borrowing', 'debt issued', 'قروض مستلمة')),
    ('debt_repaid', ('repayment of borrowing', 'debt repaid', 'سداد القروض')),
    ('marketable_securities', ('marketable securities', 'short-term investments', 'استثمارات قصيرة الأجل')),
    ('cash', ('cash', 'نقد', 'النقدية')),
    ('accounts_receivable', ('receivable', 'مدينون', 'ذمم مدينة')),
    ('inventory', ('inventor', 'مخزون')),
    ('ppe', ('property, plant', 'property plant', 'fixed assets', 'ممتلكات', 'أصول ثابتة')),
    ('intangible_assets', ('intangible', 'goodwill', 'غير ملموسة', 'الشهرة')),
    ('investments', ('long-term investments', 'investments', 'استثمارات')),
    ('accounts_payable', ('payable', 'دائنون', 'ذمم دائنة')),
    ('short_term_debt', ('short-term debt', 'short term debt', 'current portion', 'قروض قصيرة الأجل')),
    ('long_term_debt', ('long-term debt', 'long term debt', 'borrowings', 'قروض طويلة الأجل')),
    ('common_stock', ('share capital', 'common stock', 'رأس المال')),
    ('retained_earnings', ('retained earnings', 'أرباح مبقاة', 'الأرباح المحتجزة')),
    ('gross_profit', ('gross profit', 'مجمل الربح', 'إجمالي الربح')),
    ('cost_of_goods_sold', ('cost of goods', 'cost of sales', 'cost of revenue', 'تكلفة المبيعات',
                            'تكلفة الإيرادات')),
    ('operating_income', ('operating income', 'operating profit', 'الربح التشغيلي', 'الدخل التشغيلي')),
    ('income_before_tax', ('before tax', 'قبل الزكاة', 'قبل الضريبة')),
    ('net_income', ('net income', 'net profit', 'صافي الربح', 'صافي الدخل', 'الربح الصافي')),
    ('tax_expense', ('income tax', 'tax expense', 'zakat', 'الزكاة', 'ضريبة')),
    ('interest_expense', ('interest expense', 'finance cost', 'تكاليف التمويل', 'مصروف الفوائد')),
    ('depreciation', ('depreciation', 'amortization', 'استهلاك', 'إهلاك')),
    ('sga_expense', ('selling, general', 'general and administrative', 'مصاريف عمومية', 'مصروفات بيع')),
    ('rd_expense', ('research', 'البحث والتطوير')),
    ('operating_expenses', ('operating expenses', 'المصروفات التشغيلية', 'مصاريف تشغيلية')),
    ('other_income', ('other income', 'إيرادات أخرى')),
    ('revenue', ('revenue', 'sales', 'turnover', 'إيرادات', 'مبيعات', 'الإيرادات')),
    ('shares_outstanding', ('shares outstanding', 'number of shares', 'عدد الأسهم')),
    ('share_price', ('share price', 'stock price', 'سعر السهم')),
    ('employees', ('employees', 'headcount', 'عدد الموظفين')),
]


def match_line_item(label: str) -> Optional[str]:
    """Map a row label to a FinancialStatement field name, or None."""
    low = str(label).strip().lower()
    if not low:
        return None
    for field_name, keywords in LINE_ITEM_KEYWORDS:
        if any(kw in low for kw in keywords):
            return field_name
    return None


def extract_year(header: Any) -> Optional[int]:
    """
    Parse a column header into a fiscal year.

    Supports plain years, FY2024 / FY24 and 2023-24 style ranges (the
    range maps to its closing year).
    """
    if isinstance(header, (int, float)) and not isinstance(header, bool):
        if isinstance(header, float) and math.isnan(header):
            return None
        year = int(header)
        return year if 1990 <= year <= 2100 else None
    s = str(header).strip()

    m = re.search(r'(\d{4})\s*[-/]\s*(\d{2,4})\b', s)
    if m:
        start, end = m.group(1), m.group(2)
        year = int(end) if len(end) == 4 else int(start[:2] + end)
        return year if 1990 <= year <= 2100 else None

    m = re.search(r'FY\s*(\d{4})', s, re.IGNORECASE)
    if m:
        return int(m.group(1))
    m = re.search(r'FY\s*(\d{2})(?!\d)', s, re.IGNORECASE)
    if m:
        return 2000 + int(m.group(1))

    m = re.search(r'\b(19\d{2}|20\d{2})\b', s)
    if m:
        return int(m.group(1))
    return None


def _first_number(row: List[Any]) -> Optional[float]:
    for cell in row:
        number = to_number(cell)
        if number is not None:
            return number
    return None


def parse_table(frame: pd.DataFrame, default_year: Optional[int] = None) -> List[FinancialStatement]:
    """
    Turn a label-by-year table into statements.

    The first column holding text is taken as the label column. If the
    header row carries no year, the first data row is tried as header.
    """
    if frame is None or frame.empty:
        return []
    frame = frame.dropna(how='all').dropna(axis=1, how='all')
    if frame.empty:
        return []

    year_cols = {col: extract_year(col) for col in frame.columns}
    year_cols = {col: y for col, y in year_cols.items() if y is not None}

    if not year_cols and len(frame) > 1:
        header = frame.iloc[0].tolist()
        candidate = {frame.columns[i]: extract_year(h) for i, h in enumerate(header)}
        candidate = {col: y for col, y in candidate.items() if y is not None}
        if candidate:
            year_cols = candidate
            frame = frame.iloc[1:]

    label_col = next((c for c in frame.columns if c not in year_cols), frame.columns[0])
    default_year = default_year or date.today().year - 1

    values: Dict[int, Dict[str, float]] = {}
    for _, row in frame.iterrows():
        field_name = match_line_item(row[label_col])
        if field_name is None:
            continue
        if year_cols:
            for col, year in year_cols.items():
                number = to_number(row[col])
                if number is not None:
                    values.setdefault(year, {}).setdefault(field_name, number)
        else:
            rest = [row[c] for c in frame.columns if c != label_col]
            number = _first_number(rest)
            if number is not None:
                values.setdefault(default_year, {}).setdefault(field_name, number)

    statements = []
    for year, items in values.items():
        statement = FinancialStatement(year=year, **items).complete()
        statements.append(statement)
    return sort_statements(statements)


def _merge(statements: List[FinancialStatement]) -> List[FinancialStatement]:
    """Merge statements for the same year coming from different sheets."""
    by_year: Dict[int, Dict[str, float]] = {}
    for st in statements:
        merged = by_year.setdefault(st.year, {})
        for name, value in st.to_dict().items():
            if name != 'year' and value and not merged.get(name):
                merged[name] = value
    return sort_statements(FinancialStatement(year=y, **items).complete()
                           for y, items in by_year.items())


def _parse_json(raw: bytes) -> List[FinancialStatement]:
    try:
        payload = json.loads(raw.decode('utf-8-sig'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise StatementParseError(f"Invalid JSON statement file: {e}") from e
    if isinstance(payload, dict):
        payload = payload.get('statements', payload.get('financialData', [payload]))
    if not isinstance(payload, list):
        raise StatementParseError("JSON statements must be an object or a list of objects")
    return sort_statements(FinancialStatement.from_dict(item) for item in payload if isinstance(item, dict))


def extract_financial_data(source: Union[str, Path, bytes], filename: Optional[str] = None,
                           default_year: Optional[int] = None) -> List[FinancialStatement]:
    """
    Read financial statements from an uploaded file.

    Args:
        source: File path or raw bytes
        filename: Original file name (required with bytes to pick the reader)
        default_year: Year assigned to tables without year columns

    Returns:
        Statements ordered by year

    Raises:
        StatementParseError: unsupported format, unreadable file or no line items found
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        filename = filename or path.name
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise StatementParseError(f"Cannot read {path}: {e}") from e
    else:
        raw = source
    if not filename:
        raise StatementParseError("A file name is required to detect the statement format")

    ext = Path(filename).suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise StatementParseError(
            f"Unsupported file type '{ext}'. Supported: {', '.join(SUPPORTED_EXTENSIONS)}")

    logger.info(f"Parsing statement upload {filename} ({len(raw)} bytes)")

    if ext == '.json':
        statements = _parse_json(raw)
    else:
        try:
            if ext == '.csv':
                frames = {'csv': pd.read_csv(io.BytesIO(raw), sep=None, engine='python')}
            else:
                frames = pd.read_excel(io.BytesIO(raw), sheet_name=None,
                                       engine='xlrd' if ext == '.xls' else 'openpyxl')
        except (ValueError, ImportError, OSError, csv.Error, pd.errors.ParserError) as e:
            raise StatementParseError(f"Could not read {filename}: {e}") from e

        statements = []
        for sheet_name, frame in frames.items():
            parsed = parse_table(frame, default_year)
            logger.debug(f"Sheet '{sheet_name}': {len(parsed)} statement(s)")
            statements.extend(parsed)
        statements = _merge(statements)

    if not statements:
        raise StatementParseError(f"No financial line items recognised in {filename}")
    return statements
