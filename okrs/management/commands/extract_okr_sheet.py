"""
Django management command to preview what an OKR spreadsheet would pre-fill.

Usage:
    python manage.py extract_okr_sheet <path_to_file.xlsx>
    python manage.py extract_okr_sheet okrs.xlsx --json
"""
import json
import os

from django.core.management.base import BaseCommand, CommandError

from okrs.exceptions import ExtractionError
from okrs.extraction import OKRDraft, extract_draft


class Command(BaseCommand):
    help = 'Show the OKR draft extracted from a spreadsheet (nothing is saved)'

    def add_arguments(self, parser):
        parser.add_argument(
            'xlsx_file',
            type=str,
            help='Path to the .xlsx or .xls file to read'
        )
        parser.add_argument(
            '--json',
            action='store_true',
            help='Print the draft as JSON instead of a summary'
        )

    def handle(self, *args, **options):
        xlsx_file = options['xlsx_file']

        if not os.path.exists(xlsx_file):
            raise CommandError(f'File not found: {xlsx_file}')

        with open(xlsx_file, 'rb') as f:
            data = f.read()

        try:
            draft = extract_draft(data, OKRDraft.empty())
        except ExtractionError as e:
            raise CommandError(e.message) from e

        if options['json']:
            self.stdout.write(json.dumps(draft.to_dict(), indent=2))
            return

        self.stdout.write(self.style.SUCCESS(f'Read {xlsx_file}'))
        self.stdout.write(f'  Title:       {draft.title or "-"}')
        self.stdout.write(f'  Description: {draft.description or "-"}')
        self.stdout.write(f'  Objective:   {draft.objective or "-"}')
        self.stdout.write(f'  Quarter:     {draft.quarter or "-"}')
        self.stdout.write(f'  Year:        {draft.year if draft.year is not None else "-"}')

        filled = [kr for kr in draft.key_results if kr.description]
        self.stdout.write(f'  Key results: {len(filled)}')
        for kr in filled:
            self.stdout.write(f'    - {kr.description} (target: {kr.target}, current: {kr.current})')
