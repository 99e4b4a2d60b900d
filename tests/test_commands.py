from gae_deploy.commands import build_deploy_command


def test_build_deploy_command_argv() -> None:
    command = build_deploy_command("my-project", "v4-rc1", ".gae-deploy.app.yaml")

    assert command.argv == [
        "gcloud",
        "app",
        "deploy",
        ".gae-deploy.app.yaml",
        "--project=my-project",
        "--version=v4-rc1",
        "--no-promote",
        "--format=json",
    ]


def test_quiet_flag_and_custom_tool() -> None:
    command = build_deploy_command("p", "v1", "x.yaml", tool="/opt/sdk/bin/gcloud", quiet=True)

    assert command.tool == "/opt/sdk/bin/gcloud"
    assert command.argv[-1] == "--quiet"


def test_str_is_shell_quoted() -> None:
    command = build_deploy_command("p", "v1", "my dir/app.yaml")

    assert str(command).startswith("gcloud app deploy 'my dir/app.yaml' --project=p")
