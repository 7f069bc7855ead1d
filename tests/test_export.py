import codecs
import csv
import io

from entities import Submission
from export import CSV_HEADER, results_csv, results_filename

from conftest import ts


def _sub(name, code, total, when):
    return Submission(id=name, exam_id="exam-1", student_id=name, student_name=name, student_code=code,
                      answers={}, auto_score=total, total_score=total, submitted_at=when)


def test_two_submissions_make_three_lines_with_bom(make_exam):
    exam = make_exam(title="Biology, term 1")
    text = results_csv(exam, [_sub("Sara", "ST-7", 9, ts(2026, 3, 1, 10)),
                              _sub('Omar "O"', "ST-8", 4.5, ts(2026, 3, 2, 8))])
    data = text.encode("utf-8")
    assert data.startswith(codecs.BOM_UTF8)
    lines = text.lstrip("\ufeff").splitlines()
    assert len(lines) == 3
    assert lines[0] == ",".join(f'"{h}"' for h in CSV_HEADER)
    assert lines[1] == '"Biology, term 1","Sara","ST-7",9,"2026-03-01"'


def test_rows_parse_back_in_column_order(make_exam):
    exam = make_exam(title="Quiz")
    text = results_csv(exam, [_sub('Omar "O"', "ST-8", 4.5, ts(2026, 3, 2, 8))])
    rows = list(csv.reader(io.StringIO(text.lstrip("\ufeff"))))
    assert rows[1] == ["Quiz", 'Omar "O"', "ST-8", "4.5", "2026-03-02"]


def test_header_only_when_no_submissions(make_exam):
    text = results_csv(make_exam(), [])
    assert text.lstrip("\ufeff").splitlines() == [",".join(f'"{h}"' for h in CSV_HEADER)]


def test_filename_from_title(make_exam):
    assert results_filename(make_exam(title="Biology midterm")) == "Biology_midterm_results.csv"
    assert results_filename(make_exam(id="e9", title="امتحان")) == "exam_e9_results.csv"
