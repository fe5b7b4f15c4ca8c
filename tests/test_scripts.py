"""
Script Argument Tests

Invalid arguments are rejected by argparse before any store is touched.
"""

import pytest

from service.scripts import load_embeddings


@pytest.mark.parametrize("batch_size", ["0", "-5"])
def test_load_embeddings_rejects_non_positive_batch_size(tmp_path, capsys, batch_size):
    path = tmp_path / "vectors.json"
    path.write_text('{"a": [1.0, 0.0]}')

    with pytest.raises(SystemExit) as exc:
        load_embeddings.main([str(path), "--model", "m", "--batch-size", batch_size])

    assert exc.value.code == 2
    assert "--batch-size must be at least 1" in capsys.readouterr().err
