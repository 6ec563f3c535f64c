from importlib_metadata import metadata

import stackalign


def test_package_version_number_matches_setuptool_version_number():
    assert stackalign.version == metadata('stackalign')['version']


def test_settings_version_matches_package_version():
    assert stackalign.default_settings()['stackalign_version'] == stackalign.version
