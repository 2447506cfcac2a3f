"""CSV export of stored form responses."""

import csv
import io

from formchat.core.schemas_forms import Form
from formchat.core.schemas_responses import OUTPUT_VARIABLE, ResponseRecord, answers_to_map


def export_columns(form: Form) -> list[str]:
    """Header row: id, submission date, one column per prompt variable, then output."""
    columns = ["Response_ID", "Submission_Date"]
    columns.extend(p.variable_name for p in form.prompts)
    if form.has_output_prompt:
        columns.append(OUTPUT_VARIABLE)
    return columns


def responses_to_csv(form: Form, responses: list[ResponseRecord]) -> str:
    """
    Render responses as CSV text.

    Each variable takes the latest answer stored for it; missing answers are
    empty cells.
    """
    columns = export_columns(form)
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(columns)

    for record in responses:
        values = answers_to_map(record.answers)
        submitted = record.created_at.isoformat() if record.created_at else ""
        writer.writerow(
            [record.responseid, submitted] + [values.get(col, "") for col in columns[2:]]
        )

    return buffer.getvalue()
