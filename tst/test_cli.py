"""Tests for the command-line interface."""

from typer.testing import CliRunner

from activpal_converter.cli import app

runner = CliRunner()


class TestConvert:
    def test_convert(self, datx_file, output_directory):
        result = runner.invoke(app, ["convert", str(datx_file), "--output", str(output_directory)])

        assert result.exit_code == 0
        assert "Converted 200 samples (g)" in result.output
        assert (output_directory / "PAL01.csv").exists()

    def test_convert_units(self, datx_file, output_directory):
        result = runner.invoke(
            app, ["convert", str(datx_file), "-o", str(output_directory), "--units", "ms-2"]
        )
        assert result.exit_code == 0
        assert "(ms-2)" in result.output

    def test_convert_exact_match(self, tmp_path, make_datx, body_rows, output_directory):
        file_path = tmp_path / "exact.datx"
        file_path.write_bytes(make_datx(body_rows[:200]))

        rejected = runner.invoke(app, ["convert", str(file_path), "-o", str(output_directory)])
        accepted = runner.invoke(
            app, ["convert", str(file_path), "-o", str(output_directory), "--accept-exact"]
        )

        assert rejected.exit_code == 1
        assert accepted.exit_code == 0

    def test_convert_all(self, datx_file, dat_file, output_directory):
        result = runner.invoke(app, ["convert-all", str(datx_file.parent), "-o", str(output_directory)])

        assert result.exit_code == 0
        assert "Converted 2 recordings" in result.output


class TestValidate:
    def test_validate_passes(self, datx_file):
        result = runner.invoke(app, ["validate", str(datx_file)])

        assert result.exit_code == 0
        assert "Validation passed" in result.output
        assert "205 decoded" in result.output

    def test_validate_fails(self, tmp_path, make_header):
        file_path = tmp_path / "broken.datx"
        file_path.write_bytes(make_header() + bytes(30))

        result = runner.invoke(app, ["validate", str(file_path)])

        assert result.exit_code == 1
        assert "Validation failed" in result.output


class TestHeader:
    def test_header(self, dat_file):
        result = runner.invoke(app, ["header", str(dat_file)])

        assert result.exit_code == 0
        assert "hz: 20" in result.output
        assert "startTime: 2021-03-14 10:00:00" in result.output


class TestInfo:
    def test_info(self):
        result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert ".datx: 1024-byte header" in result.output
        assert ".dat: 1023-byte header" in result.output
