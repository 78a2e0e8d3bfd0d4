import json

from scripts.gen_schemas import MODELS, main


def test_gen_schemas_writes_one_file_per_model(tmp_path):
    """
    @brief
    Every exported model gets a JSON Schema file.

    @details
    Entity schemas use the column aliases as property names.
    """
    # --- Act ---
    paths = main(tmp_path)

    # --- Assert ---
    assert len(paths) == len(MODELS)
    assert all(p.exists() for p in paths)

    client = json.loads((tmp_path / "client.schema.json").read_text(encoding="utf-8"))
    assert "ClientID" in client["properties"]
