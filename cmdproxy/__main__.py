from cmdproxy.cli import cli

cli(prog_name="cmdproxy")
