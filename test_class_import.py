"""
Unit tests for the bulk class reassignment import
"""
import unittest

from class_import import (
    ColumnCountError,
    EmptyFieldError,
    InvalidGradeError,
    Reassignment,
    UnknownStudentError,
    apply_updates,
    import_reassignments,
    parse_grade,
    run_import,
    validate_row,
    validate_rows,
)
from models import MemoryBackend, RosterStore, Student

HEADER = "student_id,new_grade,new_class_name"


def make_students():
    return [
        Student(id='S001', name='Alice Johnson', grade=5, class_name='5A'),
        Student(id='S002', name='Bob Williams', grade=3, class_name='3B'),
        Student(id='S003', name='Charlie Brown', grade=8, class_name='8A'),
    ]


def csv_text(*rows):
    return '\n'.join((HEADER,) + rows)


class TestParseGrade(unittest.TestCase):

    def test_valid_grades(self):
        self.assertEqual(parse_grade('1'), 1)
        self.assertEqual(parse_grade('12'), 12)
        self.assertEqual(parse_grade('07'), 7)
        self.assertEqual(parse_grade('+6'), 6)

    def test_trailing_text_ignored(self):
        """Only the leading digits count, anything after them is ignored"""
        self.assertEqual(parse_grade('6B'), 6)
        self.assertEqual(parse_grade('6.5'), 6)
        self.assertEqual(parse_grade('1e1'), 1)
        self.assertEqual(parse_grade('7 th'), 7)

    def test_out_of_range(self):
        for value in ('0', '13', '-1', '100', '13B', '0.9'):
            self.assertIsNone(parse_grade(value), value)

    def test_not_an_integer(self):
        for value in ('abc', 'B6', '.5', '+', '', ' '):
            self.assertIsNone(parse_grade(value), value)


class TestRowValidation(unittest.TestCase):

    def setUp(self):
        self.known = {'S001', 'S002'}

    def test_valid_row(self):
        update, errors = validate_row(2, ' S001 , 6 , 6B ', self.known)
        self.assertEqual(errors, [])
        self.assertEqual(update, Reassignment('S001', 6, '6B'))

    def test_column_count_stops_other_checks(self):
        update, errors = validate_row(4, 'S999,abc,6B,extra', self.known)
        self.assertIsNone(update)
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], ColumnCountError)
        self.assertEqual(errors[0].message, 'Row 4: Invalid number of columns. Expected 3, got 4.')

    def test_every_field_checked(self):
        """A single row can report several independent problems"""
        update, errors = validate_row(3, ',,', self.known)
        self.assertIsNone(update)
        self.assertEqual([e.message for e in errors], [
            "Row 3: 'student_id' cannot be empty.",
            "Row 3: 'new_grade' cannot be empty.",
            "Row 3: 'new_class_name' cannot be empty.",
        ])
        self.assertTrue(all(isinstance(e, EmptyFieldError) for e in errors))

    def test_unknown_student_and_bad_grade(self):
        update, errors = validate_row(2, 'S999,0,6B', self.known)
        self.assertIsNone(update)
        self.assertIsInstance(errors[0], UnknownStudentError)
        self.assertIsInstance(errors[1], InvalidGradeError)
        self.assertEqual(str(errors[1]), 'Row 2: Invalid grade "0". Must be a number between 1 and 12.')

    def test_ids_are_case_sensitive(self):
        _, errors = validate_row(2, 's001,6,6B', self.known)
        self.assertEqual([e.message for e in errors], ['Row 2: Student ID "s001" not found.'])

    def test_rows_numbered_from_two(self):
        updates, errors = validate_rows(['S001,6,6B', 'S002,x,3C', 'S003,4,4A'], self.known)
        self.assertEqual(updates, [Reassignment('S001', 6, '6B')])
        self.assertEqual([e.row for e in errors], [3, 4])


class TestApplyUpdates(unittest.TestCase):

    def test_input_not_mutated(self):
        students = make_students()
        snapshot = [s.to_dict() for s in students]

        result = apply_updates(students, [Reassignment('S001', 6, '6B')])

        self.assertEqual([s.to_dict() for s in students], snapshot)
        self.assertIsNot(result, students)
        self.assertEqual(result[0].grade, 6)
        self.assertEqual(result[0].class_name, '6B')
        # Untouched students come back equal
        self.assertEqual(result[1:], students[1:])

    def test_last_row_wins(self):
        result = apply_updates(make_students(), [
            Reassignment('S002', 4, '4A'),
            Reassignment('S002', 5, '5C'),
        ])
        self.assertEqual((result[1].grade, result[1].class_name), (5, '5C'))

    def test_only_grade_and_class_change(self):
        student = Student(id='S001', name='Alice', grade=5, class_name='5A', guardian='John', password='pw')
        result = apply_updates([student], [Reassignment('S001', 6, '6B')])
        self.assertEqual(result[0].to_dict(), dict(student.to_dict(), grade=6, class_name='6B'))


class TestRunImport(unittest.TestCase):

    def test_scenario_known_student_moves(self):
        students = make_students()
        result = run_import(csv_text('S001,6,6B'), students)

        self.assertTrue(result.success)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.updated, 1)
        self.assertEqual((result.students[0].grade, result.students[0].class_name), (6, '6B'))
        self.assertEqual(result.to_dict(), {'success': True, 'updated': 1})

    def test_grade_with_trailing_text_applied(self):
        result = run_import(csv_text('S001,6B,6B'), make_students())

        self.assertTrue(result.success)
        self.assertEqual((result.students[0].grade, result.students[0].class_name), (6, '6B'))

    def test_scenario_unknown_student(self):
        result = run_import(csv_text('S999,6,6B'), make_students())
        self.assertFalse(result.success)
        self.assertIsNone(result.students)
        self.assertEqual(result.errors, ['Row 2: Student ID "S999" not found.'])

    def test_scenario_grade_out_of_range(self):
        result = run_import(csv_text('S001,13,6B'), make_students())
        self.assertEqual(result.errors, ['Row 2: Invalid grade "13". Must be a number between 1 and 12.'])

    def test_scenario_two_columns(self):
        result = run_import(csv_text('S001,6'), make_students())
        self.assertEqual(result.errors, ['Row 2: Invalid number of columns. Expected 3, got 2.'])

    def test_empty_file(self):
        result = run_import('\n  \n', make_students())
        self.assertEqual(result.errors, ['CSV file is empty.'])
        self.assertEqual(result.to_dict(), {'success': False, 'errors': ['CSV file is empty.']})

    def test_invalid_header_stops_row_checks(self):
        result = run_import('id,grade,class\nS999,99,', make_students())
        self.assertEqual(result.errors, [
            'Invalid CSV header. Expected columns: student_id, new_grade, new_class_name',
        ])

    def test_all_errors_collected_in_file_order(self):
        text = csv_text('S001,6,6B', 'S999,6,6B', 'S002,abc,3C', 'S003,7', 'S002,4,')
        result = run_import(text, make_students())
        self.assertFalse(result.success)
        self.assertEqual(result.errors, [
            'Row 3: Student ID "S999" not found.',
            'Row 4: Invalid grade "abc". Must be a number between 1 and 12.',
            'Row 5: Invalid number of columns. Expected 3, got 2.',
            "Row 6: 'new_class_name' cannot be empty.",
        ])

    def test_blank_lines_do_not_shift_row_numbers(self):
        text = '\n' + HEADER + '\n\nS001,6,6B\n\n\nS999,6,6B\n'
        result = run_import(text, make_students())
        self.assertEqual(result.errors, ['Row 3: Student ID "S999" not found.'])

    def test_embedded_comma_is_a_column_error(self):
        result = run_import(csv_text('S001,6,"6,B"'), make_students())
        self.assertEqual(result.errors, ['Row 2: Invalid number of columns. Expected 3, got 4.'])

    def test_header_only_succeeds_with_no_changes(self):
        students = make_students()
        result = run_import(HEADER, students)
        self.assertTrue(result.success)
        self.assertEqual(result.updated, 0)
        self.assertEqual(result.students, students)

    def test_duplicates_count_once(self):
        result = run_import(csv_text('S002,4,4A', 'S002,5,5C'), make_students())
        self.assertEqual(result.updated, 1)
        self.assertEqual(result.students[1].class_name, '5C')

    def test_idempotent(self):
        text = csv_text('S001,6,6B', 'S003,9,9A', 'S001,7,7A')
        once = run_import(text, make_students()).students
        twice = run_import(text, once).students
        self.assertEqual(once, twice)


class TestImportIntoStore(unittest.TestCase):

    def setUp(self):
        self.backend = MemoryBackend()
        self.store = RosterStore(self.backend, namespace='test')
        self.store.put('students', make_students())
        self.store.commit()

    def test_success_commits_students(self):
        result = import_reassignments(csv_text('S001,6,6B'), self.store)

        self.assertTrue(result.success)
        self.assertFalse(self.store.is_dirty)
        self.assertEqual(self.store.get('students')[0].class_name, '6B')

        reloaded = RosterStore(self.backend, namespace='test')
        self.assertEqual(reloaded.get('students')[0].class_name, '6B')

    def test_failure_leaves_store_untouched(self):
        before = self.store.get('students')
        result = import_reassignments(csv_text('S001,6,6B', 'S999,6,6B'), self.store)

        self.assertFalse(result.success)
        self.assertFalse(self.store.is_dirty)
        self.assertIs(self.store.get('students'), before)

    def test_failed_commit_keeps_change_staged(self):
        def fail(mapping):
            raise OSError('connection lost')
        self.backend.set_many = fail

        result = import_reassignments(csv_text('S001,6,6B'), self.store)

        self.assertTrue(result.success)
        self.assertEqual(self.store.dirty_keys, ['students'])
        self.assertEqual(self.store.get('students')[0].class_name, '6B')

    def test_unsaved_student_edits_stay_unsaved(self):
        """An import on top of unsaved student edits is staged, so discard still undoes those edits"""
        self.store.put('students', [s for s in self.store.get('students') if s.id != 'S002'])

        result = import_reassignments(csv_text('S001,6,6B'), self.store)

        self.assertTrue(result.success)
        self.assertEqual(self.store.dirty_keys, ['students'])
        self.assertEqual([s.id for s in self.store.get('students')], ['S001', 'S003'])
        self.assertNotIn('"6B"', self.backend.get('test:students'))

        self.store.rollback()
        self.assertEqual([s.id for s in self.store.get('students')], ['S001', 'S002', 'S003'])
        self.assertEqual(self.store.get('students')[0].class_name, '5A')


if __name__ == '__main__':
    unittest.main(verbosity=2)
