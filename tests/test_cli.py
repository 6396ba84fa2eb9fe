"""Command line entry point."""

import pytest

from inventory_engine.cli import build_parser, main


@pytest.fixture
def data_dir(tmp_path):
    months = [f'{year}-{month:02d}-01' for year, month in
              [(2023, m) for m in range(7, 13)] + [(2024, m) for m in range(1, 7)]]
    (tmp_path / 'items.csv').write_text(
        'item_id,title,unit_price,publication_date,category,publisher\n'
        '1,Python Basics,40.0,2023-03-01,programming,TechPress\n'
        '4,New Releases Sampler,25.0,,,\n'
    )
    (tmp_path / 'demand.csv').write_text(
        'item_id,month,quantity\n' + ''.join(f'1,{m},20\n' for m in months)
    )
    (tmp_path / 'inventory.csv').write_text(
        'item_id,store_stock,warehouse_stock,last_sold_date\n'
        '1,5,3,2024-07-01\n'
    )
    return str(tmp_path)


class TestParser:

    def test_defaults(self):
        args = build_parser().parse_args(['--data-dir', 'data'])
        assert args.horizon == 30
        assert args.date is None
        assert args.run_async is False

    def test_rejects_unknown_focus(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['--data-dir', 'data', '--focus', 'VIBES'])


class TestMain:

    def test_run(self, clean_env, env_file, data_dir, capsys):
        code = main(['--data-dir', data_dir, '--date', '2024-07-15', '--env-file', env_file])

        out = capsys.readouterr().out
        assert code == 0
        assert 'Items analysed:       2' in out
        assert 'Selected for purchase: 2 items (51 copies)' in out

    def test_budget_flag(self, clean_env, env_file, data_dir, capsys):
        code = main(['--data-dir', data_dir, '--date', '2024-07-15',
                     '--env-file', env_file, '--budget', '100'])

        assert code == 0
        assert 'Selected for purchase: 1 items (2 copies)' in capsys.readouterr().out

    def test_async(self, clean_env, env_file, data_dir, capsys):
        code = main(['--data-dir', data_dir, '--date', '2024-07-15',
                     '--env-file', env_file, '--async'])

        assert code == 0
        assert 'Selected for purchase: 2 items (51 copies)' in capsys.readouterr().out

    def test_configuration_error(self, clean_env, env_file, data_dir, monkeypatch, capsys):
        monkeypatch.setenv('INVENTORY_MAX_ITEMS', 'lots')
        assert main(['--data-dir', data_dir, '--env-file', env_file]) == 2
        assert 'Configuration error' in capsys.readouterr().out
