import json
import os
from unittest.mock import patch

import pytest

from clipstore.core.actions import ActionConfig, default_config, load_config, save_config, upgrade_config
from clipstore.core.actions.config import ACTIONS_ENV, get_actions_config_path
from clipstore.core.actions.models import ActionSubmenu


@pytest.fixture(autouse=True)
def clean_env(tmp_path):
    env = {k: v for k, v in os.environ.items() if k != ACTIONS_ENV}
    env['CLIPSTORE_CONFIG_DIR'] = str(tmp_path / 'config')
    with patch.dict(os.environ, env, clear=True):
        yield


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / 'actions.json'


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, config_path):
        assert load_config(config_path) == default_config()
        assert not config_path.exists()

    def test_missing_file_saved_on_request(self, config_path):
        load_config(config_path, save=True)
        assert json.loads(config_path.read_text(encoding='utf-8')) == default_config().to_dict()

    def test_default_location(self, tmp_path):
        assert get_actions_config_path() == tmp_path / 'config' / 'actions.json'
        load_config(save=True)
        assert get_actions_config_path().exists()

    def test_reads_file(self, config_path, command_action):
        config = ActionConfig(actions=[command_action('mine')], defaults={'text': 'mine'})
        config_path.write_text(json.dumps(config.to_dict()), encoding='utf-8')
        assert load_config(config_path) == config

    def test_malformed_json_gives_defaults(self, config_path):
        config_path.write_text('{"actions": [', encoding='utf-8')
        assert load_config(config_path) == default_config()

    def test_wrong_shape_gives_defaults(self, config_path):
        config_path.write_text('[1, 2, 3]', encoding='utf-8')
        assert load_config(config_path, save=True) == default_config()
        assert config_path.read_text(encoding='utf-8') == '[1, 2, 3]'

    def test_env_forces_defaults(self, config_path, command_action):
        save_config(ActionConfig(actions=[command_action('mine')]), config_path)
        with patch.dict(os.environ, {ACTIONS_ENV: 'default'}):
            assert load_config(config_path) == default_config()

    def test_env_path_overrides(self, tmp_path, config_path, command_action):
        other = tmp_path / 'other.json'
        save_config(ActionConfig(actions=[command_action('other')]), other)
        with patch.dict(os.environ, {ACTIONS_ENV: str(other)}):
            assert [a.id for a in load_config(config_path).actions] == ['other']


class TestSaveConfig:
    def test_writes_tab_indented_json(self, config_path):
        save_config(default_config(), config_path)
        text = config_path.read_text(encoding='utf-8')
        assert '\n\t"actions"' in text
        assert not config_path.with_name('actions.json.tmp').exists()

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / 'a' / 'b' / 'actions.json'
        save_config(ActionConfig(), path)
        assert json.loads(path.read_text(encoding='utf-8')) == {'actions': [], 'defaults': {}}

    def test_backup_keeps_previous_file(self, config_path, command_action):
        save_config(ActionConfig(actions=[command_action('old')]), config_path)
        save_config(ActionConfig(actions=[command_action('new')]), config_path, backup=True)

        backup = config_path.with_name('actions.json~')
        assert json.loads(backup.read_text(encoding='utf-8'))['actions'][0]['id'] == 'old'
        assert json.loads(config_path.read_text(encoding='utf-8'))['actions'][0]['id'] == 'new'

    def test_failure_propagates(self, tmp_path):
        blocker = tmp_path / 'file'
        blocker.write_text('x')
        with pytest.raises(OSError):
            save_config(ActionConfig(), blocker / 'actions.json')


class TestUpgradeConfig:
    def test_adds_missing_bundled_actions(self, config_path):
        bundled = default_config()
        open_menu = next(item for item in bundled.actions if isinstance(item, ActionSubmenu))
        user = ActionConfig(actions=[
            ActionSubmenu(name=open_menu.name, actions=open_menu.actions[:1]),
        ], defaults={'text': 'custom'})
        save_config(user, config_path)

        added = upgrade_config(config_path)

        upgraded = load_config(config_path)
        assert added == 8
        assert upgraded.actions[0].name == open_menu.name
        assert upgraded.actions[0].actions == open_menu.actions
        assert upgraded.defaults == {'text': 'custom'}
        assert config_path.with_name('actions.json~').exists()

    def test_up_to_date_config_is_left_alone(self, config_path):
        save_config(default_config(), config_path)
        assert upgrade_config(config_path) == 0
        assert not config_path.with_name('actions.json~').exists()

    def test_missing_file_needs_no_upgrade(self, config_path):
        assert upgrade_config(config_path) == 0
        assert not config_path.exists()

    def test_env_override_disables_upgrade(self, config_path):
        save_config(ActionConfig(), config_path)
        with patch.dict(os.environ, {ACTIONS_ENV: 'default'}):
            assert upgrade_config(config_path) == 0
        assert load_config(config_path) == ActionConfig()


class TestUserCustomizations:
    def test_upgrade_keeps_unknown_keys(self, config_path):
        config_path.write_text(json.dumps({'actions': [
            {'kind': 'command', 'id': 'mine', 'name': 'Mine', 'output': 'copy',
             'command': 'echo', 'icon': 'terminal'},
            {'name': 'Open', 'actions': [], 'collapsed': True},
        ], 'defaults': {}}), encoding='utf-8')

        assert upgrade_config(config_path) > 0

        saved = json.loads(config_path.read_text(encoding='utf-8'))['actions']
        assert saved[0]['id'] == 'mine'
        assert saved[0]['icon'] == 'terminal'
        assert saved[1]['name'] == 'Open'
        assert saved[1]['collapsed'] is True
        assert [a['id'] for a in saved[1]['actions']] == [
            'open-with-default', 'open-with-files', 'open-with-browser']

    def test_upgrade_leaves_unreadable_file_alone(self, config_path):
        original = json.dumps({'actions': [
            {'kind': 'command', 'id': 'mine', 'name': 'Mine', 'output': 'Copy', 'command': 'echo'},
            {'kind': 'command', 'id': 'mine2', 'name': 'Mine 2', 'output': 'copy', 'command': 'echo'},
        ], 'defaults': {}})
        config_path.write_text(original, encoding='utf-8')

        assert upgrade_config(config_path) == 0
        assert config_path.read_text(encoding='utf-8') == original
        assert not config_path.with_name('actions.json~').exists()

    def test_override_path_is_not_written(self, tmp_path, config_path):
        other = tmp_path / 'missing.json'
        with patch.dict(os.environ, {ACTIONS_ENV: str(other)}):
            assert load_config(config_path, save=True) == default_config()
        assert not other.exists()
        assert not config_path.exists()
