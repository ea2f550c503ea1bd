from django.core.management.base import BaseCommand

from api.services.materializer import materialize_category_playlists


class Command(BaseCommand):
    help = 'Regenerate the global auto playlist of every category (safe to run on a schedule)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--size',
            type=int,
            default=None,
            help='Tracks sampled per category playlist (defaults to AUTO_PLAYLIST_SIZE)',
        )

    def handle(self, *args, **options):
        self.stdout.write('Regenerating category playlists...')
        playlists = materialize_category_playlists(size=options['size'])

        for playlist in playlists:
            self.stdout.write(f"  {playlist.title}: {playlist.tracks.count()} tracks")

        self.stdout.write(
            self.style.SUCCESS(f'{len(playlists)} category playlists regenerated.')
        )
