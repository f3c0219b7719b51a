import os

import pytest

from visionary.api.cli import handle_command, read_line


async def test_generate_edit_undo_session(orchestrator, backend, capsys, red_image, blue_image):
    backend.generated = [red_image]
    backend.edited = [blue_image]

    assert await handle_command(orchestrator, "generate a dragon in a desert")
    assert await handle_command(orchestrator, "edit make the sky red")
    assert await handle_command(orchestrator, "undo")
    await orchestrator.wait_for_refinement()

    output = capsys.readouterr().out
    assert "Image generated." in output
    assert "Creative enhancements:" in output
    assert "Reverted to the previous image state." in output
    assert backend.calls[0] == ("generate", "a dragon in a desert")
    assert orchestrator.image == red_image


async def test_errors_are_printed_not_raised(orchestrator, capsys):
    assert await handle_command(orchestrator, "edit add a hat")
    assert await handle_command(orchestrator, "generate")

    output = capsys.readouterr().out
    assert "Invalid Input: No image to edit." in output
    assert "Invalid Input: Cannot generate image from an empty prompt." in output


async def test_history_commands(orchestrator, backend, capsys, green_image, tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(green_image.data)

    await handle_command(orchestrator, "history list")
    assert "History is empty." in capsys.readouterr().out

    await handle_command(orchestrator, f"upload {path}")
    await handle_command(orchestrator, "history list")
    assert "0: data:image/jpeg;base64," in capsys.readouterr().out

    await handle_command(orchestrator, "history load zero")
    assert "Usage: history load <index>" in capsys.readouterr().out

    await handle_command(orchestrator, "history load 0")
    assert "Image loaded." in capsys.readouterr().out
    assert orchestrator.image.mime_type == "image/jpeg"


async def test_download(orchestrator, capsys, red_image, tmp_path):
    orchestrator.image = red_image
    orchestrator.prompt = "sunset"

    await handle_command(orchestrator, f"download {tmp_path}")

    assert os.path.exists(tmp_path / "sunset.png")
    assert "Saved" in capsys.readouterr().out


async def test_unknown_and_exit(orchestrator, capsys):
    assert await handle_command(orchestrator, "fly")
    assert "Unknown command: fly" in capsys.readouterr().out
    assert await handle_command(orchestrator, "") is True
    assert await handle_command(orchestrator, "exit") is False


async def test_apply_and_regenerate(orchestrator, backend, capsys, red_image, blue_image, green_image):
    backend.generated = [red_image, green_image]
    backend.edited = [blue_image]
    await handle_command(orchestrator, "generate a castle")
    await orchestrator.wait_for_refinement()

    await handle_command(orchestrator, "apply creative 1")
    assert "Invalid Input: There are no creative suggestions yet." in capsys.readouterr().out

    await handle_command(orchestrator, "suggest")
    await handle_command(orchestrator, "apply creative 2")
    assert "Suggestion applied." in capsys.readouterr().out
    assert backend.calls[-2] == ("edit", "edit creative description 2")
    assert orchestrator.image == blue_image

    await handle_command(orchestrator, "apply creative 0")
    assert "Usage: apply <tier> <n>" in capsys.readouterr().out

    await handle_command(orchestrator, "regenerate")
    await orchestrator.wait_for_refinement()
    assert backend.count("generate") == 2
    assert orchestrator.image == green_image


async def test_set_edit_then_bare_edit(orchestrator, backend, capsys, red_image, blue_image):
    orchestrator.image = red_image
    backend.edited = [blue_image]

    await handle_command(orchestrator, "edit")
    assert "Please enter a prompt to edit the image." in capsys.readouterr().out

    await handle_command(orchestrator, "set-edit add a rainbow")
    await handle_command(orchestrator, "edit")
    assert backend.calls[0] == ("edit", "add a rainbow")
    assert "Image edited." in capsys.readouterr().out


async def test_read_line_returns_input(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt: "generate a fox")
    assert await read_line("visionary> ") == "generate a fox"


async def test_read_line_raises_eof(monkeypatch):
    def closed(prompt):
        raise EOFError

    monkeypatch.setattr("builtins.input", closed)
    with pytest.raises(EOFError):
        await read_line("visionary> ")
