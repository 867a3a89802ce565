# arcms/management/commands/generate_targets.py
from django.core.management.base import BaseCommand, CommandError

from arcms.compilers import CompilerError
from arcms.descriptor import (
    DescriptorError,
    NoMarkersError,
    generate_descriptor,
    target_manifest,
)


class Command(BaseCommand):
    help = 'Compile all marker images into the targets descriptor and upload it'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the images that would be compiled without compiling',
        )

    def handle(self, *args, **options):
        manifest = target_manifest()
        if not manifest and options['dry_run']:
            self.stdout.write("No markers found")
            return
        for entry in manifest:
            self.stdout.write(f"[{entry['targetIndex']}] {entry['title']} -> {entry['imageUrl']}")

        if options['dry_run']:
            return

        try:
            result = generate_descriptor()
        except NoMarkersError:
            raise CommandError("No markers found, removed any previous descriptor")
        except (CompilerError, DescriptorError) as e:
            raise CommandError(f"Descriptor generation failed: {e}")

        self.stdout.write(
            self.style.SUCCESS(
                f"Compiled {result.marker_count} markers into {result.key} ({result.size} bytes)"
            )
        )
        self.stdout.write(f"Public URL: {result.url}")
