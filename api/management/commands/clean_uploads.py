from django.core.management.base import BaseCommand
from django.core.files.storage import default_storage
from api.models import Image
import posixpath


class Command(BaseCommand):
    help = 'Cleans orphaned files in the uploads directory'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='List orphaned files without deleting them')

    def walk(self, path):
        dirs, files = default_storage.listdir(path)
        for name in files:
            yield posixpath.join(path, name)
        for name in dirs:
            yield from self.walk(posixpath.join(path, name))

    def handle(self, *args, **options):
        if not default_storage.exists('uploads'):
            self.stdout.write("No uploads directory, nothing to clean")
            return

        existing_files = set(Image.objects.values_list('file', flat=True))
        removed = 0

        for file_path in self.walk('uploads'):
            if file_path in existing_files:
                continue
            if options['dry_run']:
                self.stdout.write(f"Would delete orphaned: {file_path}")
                continue
            try:
                default_storage.delete(file_path)
                removed += 1
                self.stdout.write(f"Deleted orphaned: {file_path}")
            except OSError as e:
                self.stderr.write(f"Error deleting {file_path}: {e}")

        self.stdout.write(self.style.SUCCESS(f"Removed {removed} orphaned file(s)"))
