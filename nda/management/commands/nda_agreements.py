"""
List the NDA agreements of a project, optionally force-cancelling one.
"""
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from accounts.permissions import user_is_admin
from nda import exceptions
from nda.services import lifecycle

User = get_user_model()


class Command(BaseCommand):
    help = 'List NDA agreements for a project and optionally cancel one'

    def add_arguments(self, parser):
        parser.add_argument('--project', type=int, required=True, help='Project id')
        parser.add_argument('--cancel', type=int, help='Agreement id to cancel')
        parser.add_argument('--by', type=str, help='Email of the administrator performing the cancellation')
        parser.add_argument('--reason', type=str, default='Cancelled by administrator')

    def handle(self, *args, **options):
        try:
            project = lifecycle.get_project(options['project'])
        except exceptions.NotFoundError as e:
            raise CommandError(e.message)

        if options['cancel']:
            self._cancel(project, options)

        agreements = lifecycle.agreements_for_project(project)
        if not agreements:
            self.stdout.write(self.style.WARNING(f'No NDA agreements for project "{project.title}"'))
            return

        self.stdout.write(f'NDA agreements for "{project.title}" (#{project.pk}):')
        for agreement in agreements:
            company = agreement.company_signature_info.get('company_name') or agreement.company_user.email
            signed = agreement.signed_at.strftime('%Y-%m-%d') if agreement.signed_at else '-'
            self.stdout.write(
                f'  #{agreement.pk:<5} {agreement.status:<22} {company:<30} signed: {signed}  ref: {agreement.sadiq_reference_number or "-"}'
            )

    def _cancel(self, project, options):
        if not options['by']:
            raise CommandError('--by <admin email> is required with --cancel')
        try:
            admin_user = User.objects.get(email=options['by'])
        except User.DoesNotExist:
            raise CommandError(f'User with email "{options["by"]}" does not exist')
        if not user_is_admin(admin_user):
            raise CommandError(f'{admin_user.email} is not an administrator')

        try:
            agreement = lifecycle.get_agreement(options['cancel'])
            if agreement.project_id != project.pk:
                raise CommandError(f'Agreement #{agreement.pk} does not belong to project #{project.pk}')
            lifecycle.cancel_agreement(agreement, admin_user, options['reason'])
        except exceptions.NdaError as e:
            raise CommandError(e.message)
        self.stdout.write(self.style.SUCCESS(f'✓ Cancelled agreement #{agreement.pk}'))
