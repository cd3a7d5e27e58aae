# run_tests.py
"""
Test runner for the whole back office.
Runs every app's tests.py against the in-memory backends.
"""
import os
import sys
import django

# Setup Django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.test')
django.setup()

from django.core.management import call_command
from django.test.utils import get_runner
from django.conf import settings

TEST_APPS = [
    'apps.core',
    'apps.users',
    'apps.clients',
    'apps.catalog',
    'apps.locations',
    'apps.entries',
    'apps.forms',
    'apps.exports',
    'apps.dashboard',
    'apps.notifications',
]


def run_all_tests():
    """Run all tests with detailed reporting"""
    print("=" * 80)
    print("BACK OFFICE TEST SUITE")
    print("=" * 80)
    print()

    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2, interactive=False)

    failures = test_runner.run_tests(TEST_APPS)

    print()
    print("=" * 80)
    if failures:
        print(f"TESTS FAILED: {failures} failure(s)")
    else:
        print("ALL TESTS PASSED")
    print("=" * 80)

    return failures


def run_specific_app(app_name):
    """Run tests for a specific app"""
    print(f"Running tests for {app_name}...")
    call_command('test', f'apps.{app_name}', verbosity=2)


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Run tests for the application')
    parser.add_argument(
        '--app',
        type=str,
        help='Run tests for a specific app (e.g., clients, entries, forms)'
    )

    args = parser.parse_args()

    if args.app:
        run_specific_app(args.app)
    else:
        sys.exit(run_all_tests())
