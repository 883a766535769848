"""Pipeline runner that orchestrates build steps."""

from opkit.context import BuildContext
from opkit.errors import BuildStepError
from opkit.steps.base import BuildStep, StepStatus
from opkit.steps.build import CompileStep, UserBuildStep
from opkit.steps.launch import LaunchStep
from opkit.steps.notarize import NotarizeStep
from opkit.steps.package import AppStorePackageStep, PackageStep
from opkit.steps.prepare import LayoutStep, ManifestStep
from opkit.steps.signing import CodeSignStep
from opkit.ui.protocol import BuildUI
from opkit.utils.process import ProcessRunner


def get_steps(context: BuildContext) -> list[BuildStep]:
    """Get list of steps for the given context.

    macOS signs the bundle before zipping it; Windows signs the finished
    .appx, so the order of signing and packaging follows the platform.

    Args:
        context: Build context

    Returns:
        List of steps to execute
    """
    if context.platform.sign_before_package:
        distribute: list[BuildStep] = [CodeSignStep(), PackageStep()]
    else:
        distribute = [PackageStep(), CodeSignStep()]

    all_steps: list[BuildStep] = [
        LayoutStep(),
        ManifestStep(),
        UserBuildStep(),
        CompileStep(),
        *distribute,
        NotarizeStep(),
        AppStorePackageStep(),
        LaunchStep(),
    ]

    # Filter to only steps that should run for this context
    return [step for step in all_steps if step.should_run(context)]


def output_path(context: BuildContext) -> str | None:
    """The most meaningful artifact of a finished build."""
    if context.layout is None:
        return None
    if context.options.package:
        return str(context.platform.artifact_path(context))
    return str(context.layout.package_root)


async def run_build(
    context: BuildContext,
    ui: BuildUI,
    use_pty: bool = True,
    runner: ProcessRunner | None = None,
    steps: list[BuildStep] | None = None,
) -> int:
    """Run the complete pipeline.

    Args:
        context: Build context
        ui: UI for output and status updates
        use_pty: Whether to use PTY for subprocess execution
        runner: Process runner (a default one is created if None)
        steps: Steps to run (derived from the context if None)

    Returns:
        0 on success, otherwise the exit code of the failed step
    """
    steps = steps if steps is not None else get_steps(context)
    runner = runner or ProcessRunner(use_pty=use_pty, timeout=context.toolchain.process_timeout)

    step_results: list[tuple[str, StepStatus]] = []
    current_step = 0
    exit_code = 0

    ui.log_info(f"Project: {context.project_dir} ({context.build_description})")

    try:
        for i, step in enumerate(steps, 1):
            current_step = i
            step.status = StepStatus.RUNNING

            await ui.log_step(i, len(steps), step.name)
            await ui.update_step_status(i, StepStatus.RUNNING)

            try:
                updated = await step.execute(context, runner, ui.log_output)
            except BuildStepError as e:
                step.status = StepStatus.FAILED
                await ui.update_step_status(i, StepStatus.FAILED)
                ui.log_error(str(e))
                step_results.append((step.name, StepStatus.FAILED))
                exit_code = e.exit_code or 1
                break

            if updated is not None:
                context = updated
            if step.status != StepStatus.SKIPPED:
                step.status = StepStatus.SUCCESS
            await ui.update_step_status(i, step.status)
            step_results.append((step.name, step.status))

        # Mark remaining steps as pending (not reached)
        for step in steps[current_step:]:
            step_results.append((step.name, StepStatus.PENDING))

    except Exception as e:
        ui.log_error(f"Unexpected error: {e}")
        exit_code = 1
        if 0 < current_step <= len(steps):
            steps[current_step - 1].status = StepStatus.FAILED
            await ui.update_step_status(current_step, StepStatus.FAILED)
            if len(step_results) < current_step:
                step_results.append((steps[current_step - 1].name, StepStatus.FAILED))
            for step in steps[current_step:]:
                step_results.append((step.name, StepStatus.PENDING))

    success = exit_code == 0
    ui.print_summary(
        steps=step_results,
        success=success,
        output_path=output_path(context) if success else None,
        build_description=context.build_description,
    )

    return exit_code
