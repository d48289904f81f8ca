#!/usr/bin/env python3
"""
Unit tests for the restore_default_tmt.py script.
"""

import os
import sys
import unittest
from unittest.mock import patch

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../../../')))

# Import the script under test
import scripts.restore_default_tmt as restore_script
from tests.fake_nvme import FakeNvme


@pytest.mark.usefixtures("clean_env")
class TestRestoreDefaultTmt(unittest.TestCase):
    """Test cases for the restore_default_tmt.py script."""

    def setUp(self):
        """Set up test environment before each test."""
        # Throttled drive running nvme-cli 1.x
        self.fake = FakeNvme(current=0x01110113, version="nvme version 1.16\n")
        self.patches = [
            patch('subprocess.run', side_effect=self.fake),
            patch('os.geteuid', return_value=0),
            patch('shutil.which', return_value='/usr/sbin/nvme'),
        ]
        self.mocks = [p.start() for p in self.patches]

    def tearDown(self):
        """Clean up after tests."""
        for p in self.patches:
            p.stop()

    def test_parse_arguments(self):
        args = restore_script.parse_arguments(['-d', '/dev/nvme1', '--save'])

        self.assertEqual(args.device, '/dev/nvme1')
        self.assertTrue(args.save)

    def test_unknown_option(self):
        with self.assertRaises(SystemExit):
            restore_script.parse_arguments(['--change-both', 'true'])

    def test_restore(self):
        exit_code = restore_script.main([])

        self.assertEqual(exit_code, 0)
        self.assertEqual(self.fake.current, self.fake.default)
        self.assertFalse(self.fake.saved)

    def test_restore_uses_text_output_without_id_ctrl(self):
        restore_script.main([])

        self.assertEqual(self.fake.commands('id-ctrl'), [])
        for command in self.fake.commands('get-feature'):
            self.assertNotIn('-o', command)

    def test_restore_with_save(self):
        self.assertEqual(restore_script.main(['--save']), 0)
        self.assertTrue(self.fake.saved)
        self.assertEqual(self.fake.commands('set-feature')[0][-1], '--save')

    def test_restore_json_output(self):
        self.assertEqual(restore_script.main(['--output-format', 'json']), 0)
        self.assertIn('json', self.fake.commands('get-feature')[0])

    def test_restore_defaults_not_in_ascending_order(self):
        # "Current value:0x01670115" decodes to TMT1 359K, TMT2 277K
        self.fake.default = 0x01670115

        self.assertEqual(restore_script.main([]), 0)
        set_command = self.fake.commands('set-feature')[0]
        self.assertEqual(set_command[set_command.index('-v') + 1], str(0x01670115))
        self.assertEqual(self.fake.current, 0x01670115)

    def test_report_dir_not_writable(self):
        with open('not_a_dir', 'w', encoding='utf-8') as fh:
            fh.write('')
        report_dir = os.path.join(os.getcwd(), 'not_a_dir', 'reports')

        self.assertEqual(restore_script.main(['--report-dir', report_dir]), 0)
        self.assertEqual(self.fake.current, self.fake.default)

    def test_default_read_failure(self):
        self.fake.fail_on = ['get-feature']

        self.assertEqual(restore_script.main([]), 1)
        self.assertEqual(self.fake.commands('set-feature'), [])

    def test_not_root(self):
        self.mocks[1].return_value = 1000

        self.assertEqual(restore_script.main([]), 1)
        self.assertEqual(self.fake.calls, [])

    def test_verification_mismatch_is_not_fatal(self):
        self.fake.ignore_set = True

        self.assertEqual(restore_script.main([]), 0)
        self.assertEqual(self.fake.current, 0x01110113)

    def test_dry_run(self):
        self.assertEqual(restore_script.main(['--dry-run']), 0)
        self.assertEqual(self.fake.commands('set-feature'), [])

    def test_report_dir(self):
        report_dir = os.path.join(os.getcwd(), 'reports')

        self.assertEqual(restore_script.main(['--report-dir', report_dir]), 0)
        self.assertEqual(len(os.listdir(report_dir)), 1)

    def test_config_file(self):
        with open('hctm.yaml', 'w', encoding='utf-8') as fh:
            fh.write("device: /dev/nvme4\nsave: true\n")

        self.assertEqual(restore_script.main(['--config', 'hctm.yaml']), 0)
        set_command = self.fake.commands('set-feature')[0]
        self.assertEqual(set_command[2], '/dev/nvme4')
        self.assertIn('--save', set_command)


if __name__ == '__main__':
    unittest.main()
