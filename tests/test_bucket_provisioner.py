"""
Bucket provisioning: idempotent, never raises, private documents bucket.
"""

from conftest import login
from services.bucket_provisioner import ensure_buckets, storage_status


class TestEnsureBuckets:

    def test_creates_missing_buckets(self, app_ctx, supabase):
        ensure_buckets()

        created = {call[1]: call[2] for call in supabase.storage.calls_named('create_bucket')}
        assert set(created) == {'documents', 'signatures'}
        assert created['documents'] == {'public': False, 'file_size_limit': 10 * 1024 * 1024}
        assert created['signatures'] == {'public': False, 'file_size_limit': 5 * 1024 * 1024}

    def test_signatures_bucket_visibility_follows_config(self, app_ctx, supabase):
        app_ctx.config['SIGNATURES_BUCKET_PUBLIC'] = True
        ensure_buckets()
        assert supabase.storage.buckets['signatures']['public'] is True
        assert supabase.storage.buckets['documents']['public'] is False

    def test_existing_buckets_are_left_alone(self, app_ctx, supabase):
        supabase.storage.buckets = {'documents': {}, 'signatures': {}}
        ensure_buckets()
        assert supabase.storage.calls_named('create_bucket') == []

    def test_second_call_does_nothing(self, app_ctx, supabase):
        ensure_buckets()
        calls_after_first = len(supabase.storage.calls)

        ensure_buckets()

        assert len(supabase.storage.calls) == calls_after_first

    def test_creation_failure_is_swallowed_and_retried(self, app_ctx, supabase):
        supabase.storage.fail_create_bucket = True
        ensure_buckets()
        assert supabase.storage.buckets == {}

        supabase.storage.fail_create_bucket = False
        ensure_buckets()
        assert set(supabase.storage.buckets) == {'documents', 'signatures'}


class TestStorageStatus:

    def test_reports_each_bucket(self, app_ctx, supabase):
        supabase.storage.buckets = {'documents': {}}
        supabase.storage.files = {'documents': {'documents/u/1_a.pdf': {}, 'documents/u/2_b.pdf': {}}}

        status = storage_status()

        assert status['documents'] == {'exists': True, 'created': False, 'file_count': 2}
        assert status['signatures'] == {'exists': False, 'created': True, 'file_count': 0}

    def test_reports_failed_creation(self, app_ctx, supabase):
        supabase.storage.fail_create_bucket = True
        status = storage_status()
        assert status['documents'] == {'exists': False, 'created': False, 'file_count': 0}

    def test_status_endpoint(self, app, client, supabase):
        login(client, app)
        response = client.get('/api/storage/status')
        data = response.get_json()
        assert response.status_code == 200
        assert data['success'] is True
        assert set(data['buckets']) == {'documents', 'signatures'}
