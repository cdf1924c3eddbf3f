"""
Poll Sadiq for agreements waiting on signatures and expire overdue invitations.

Run from cron (or with --loop) as a backstop for missed webhooks.
"""
import logging
import time

from django.conf import settings
from django.core.management.base import BaseCommand

from nda import exceptions
from nda.models import NdaAgreement
from nda.services import lifecycle
from nda.services.sadiq import SadiqService

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Refresh signature status of pending NDA agreements'

    def add_arguments(self, parser):
        parser.add_argument('--loop', action='store_true', help='Keep polling every NDA_POLL_INTERVAL_SECONDS')
        parser.add_argument('--retries', type=int, default=3, help='Attempts per agreement when Sadiq is unavailable')
        parser.add_argument('--backoff', type=float, default=2.0, help='Initial backoff in seconds, doubled per retry')

    def handle(self, *args, **options):
        bridge = SadiqService()
        while True:
            self.poll_once(bridge, options['retries'], options['backoff'])
            if not options['loop']:
                return
            time.sleep(getattr(settings, 'NDA_POLL_INTERVAL_SECONDS', 30))

    def poll_once(self, bridge, retries, backoff):
        expired = lifecycle.expire_due_agreements()
        if expired:
            self.stdout.write(self.style.WARNING(f'Expired {expired} overdue invitation(s)'))

        pending = NdaAgreement.objects.select_related('project', 'project__owner', 'company_user').filter(
            status=NdaAgreement.Status.INVITATION_SENT
        )
        signed = failed = 0
        for agreement in pending:
            try:
                agreement = self._refresh(agreement, bridge, retries, backoff)
            except exceptions.NdaError as e:
                failed += 1
                logger.warning('Could not refresh NDA %s: %s', agreement.pk, e.message)
                continue
            if agreement.status == NdaAgreement.Status.SIGNED:
                signed += 1

        self.stdout.write(self.style.SUCCESS(f'Polled {len(pending)} agreement(s): {signed} signed, {failed} failed'))

    def _refresh(self, agreement, bridge, retries, backoff):
        delay = backoff
        for attempt in range(1, retries + 1):
            try:
                return lifecycle.refresh_signature_status(agreement, bridge=bridge)
            except exceptions.ProviderUnavailable:
                if attempt == retries:
                    raise
                logger.info('Sadiq unavailable for NDA %s, retrying in %.1fs', agreement.pk, delay)
                time.sleep(delay)
                delay *= 2
