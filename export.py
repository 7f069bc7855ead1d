"""CSV export of an exam's results."""

from __future__ import annotations

import csv
import io

from werkzeug.utils import secure_filename

BOM = "\ufeff"
CSV_HEADER = ["Exam Title", "Student Name", "Student Code", "Total Score", "Submitted At"]


def results_csv(exam, submissions) -> str:
    """Header plus one row per submission, prefixed with a UTF-8 byte-order mark.

    Text columns are double-quoted; the score is written as a bare number.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for s in submissions:
        writer.writerow([
            exam.title,
            s.student_name,
            s.student_code,
            s.total_score,
            s.submitted_at.date().isoformat(),
        ])
    return BOM + output.getvalue()


def results_filename(exam) -> str:
    stem = secure_filename(exam.title) or f"exam_{exam.id}"
    return f"{stem}_results.csv"
