import os

from django.core.management.base import BaseCommand, CommandError

from exams.importers import parse_question_csv, parse_question_text, save_parsed_questions
from exams.models import Exam


class Command(BaseCommand):
    help = 'Imports multiple-choice questions into an exam from a text or CSV file'

    def add_arguments(self, parser):
        parser.add_argument('exam_id', type=int, help='The exam to add questions to')
        parser.add_argument('filename', type=str, help='A .txt (question blocks) or .csv file')
        parser.add_argument('--marks', type=int, default=1, help='Marks per question when the file gives none')
        parser.add_argument('--dry-run', action='store_true', help='Parse and report without saving')

    def handle(self, *args, **options):
        filename = options['filename']
        if not os.path.exists(filename):
            raise CommandError(f"File {filename} not found!")

        try:
            exam = Exam.objects.get(pk=options['exam_id'])
        except Exam.DoesNotExist:
            raise CommandError(f"Exam {options['exam_id']} does not exist")

        with open(filename, encoding='utf-8-sig') as fh:
            content = fh.read()

        if filename.lower().endswith('.csv'):
            parsed = parse_question_csv(content, options['marks'])
        else:
            parsed = parse_question_text(content, options['marks'])

        for index, question in enumerate(parsed, start=1):
            if not question.valid:
                self.stdout.write(self.style.WARNING(f"Block {index} skipped: {question.error}"))

        if options['dry_run']:
            valid = sum(1 for q in parsed if q.valid)
            self.stdout.write(f"{valid} of {len(parsed)} questions are valid")
            return

        created = save_parsed_questions(exam, parsed)
        self.stdout.write(self.style.SUCCESS(
            f"Imported {created} questions into {exam.title} (total marks {exam.total_marks})"
        ))
