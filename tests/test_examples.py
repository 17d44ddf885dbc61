"""Smoke test for the bundled example."""

from examples.blog_example import demonstrate_soft_delete


def test_blog_example_runs(capsys):
    demonstrate_soft_delete()

    output = capsys.readouterr().out
    assert "Categories: 0 active / 1 stored" in output
    assert "Posts: 1 active / 2 stored" in output
    assert "Comments: 0 active / 1 stored" in output
    assert "created_at unchanged: True" in output
    assert "still active: True" in output
