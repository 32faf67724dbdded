"""
HandGrab - Pinch and fist grabbing of 3D objects from a webcam

Entry point for the application.
"""
import argparse
import logging
import sys
from pathlib import Path


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="HandGrab - Hand gesture click and grab",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: config.yaml)",
    )

    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Path to the user settings file (overrides config)",
    )

    parser.add_argument(
        "--max-hands",
        type=int,
        choices=[1, 2],
        default=None,
        help="Hands used for clicking (saved to settings)",
    )

    parser.add_argument(
        "--click-mode",
        choices=["pinch", "fist", "both"],
        default=None,
        help="Gesture that clicks (saved to settings)",
    )

    parser.add_argument(
        "--calibrate",
        action="store_true",
        help="Record your own pinch/fist thresholds, then exit",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode with landmark overlay",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO, DEBUG with --debug)",
    )

    return parser.parse_args()


def build_demo_scene(config):
    """Camera plus a few grabbable boxes in front of it."""
    from src.interaction import InteractiveObject, PerspectiveCamera, SceneRegistry

    camera = PerspectiveCamera(
        position=config.scene.camera_position,
        target=config.scene.camera_target,
        fov=config.scene.fov,
        aspect=config.scene.aspect,
    )
    scene = SceneRegistry(camera)
    for name, x in (("left", -2.0), ("center", 0.0), ("right", 2.0)):
        scene.register(InteractiveObject(name, position=(x, 0.0, 0.0)))
    return camera, scene


def draw_scene(frame, camera, scene, controller):
    """Draw each object's center as a circle on the mirrored preview."""
    import cv2

    h, w = frame.shape[:2]
    for obj in scene.objects():
        screen = camera.project(obj.position)
        if screen is None:
            continue
        center = (int(screen[0] * w), int(screen[1] * h))
        if obj is controller.grabbed_object:
            color = (0, 0, 255)
        elif obj is controller.hovered_object:
            color = (0, 255, 255)
        else:
            color = (200, 200, 200)
        cv2.circle(frame, center, 20, color, 2)
        cv2.putText(frame, obj.name, (center[0] - 20, center[1] - 28),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.5, color, 1)


def run_webcam_debug(config, store):
    """
    Run webcam in debug mode - shows camera feed with landmarks, the click
    signal and the grab state over a demo scene.
    """
    import cv2
    from src.vision import ClickGestureEngine
    from src.vision.hand_tracker import HandTracker
    from src.interaction import GrabController, load_click_calibration, load_click_settings

    tracker = HandTracker(config)
    engine = ClickGestureEngine(
        config.gestures,
        load_click_settings(store),
        load_click_calibration(store),
    )
    camera, scene = build_demo_scene(config)
    controller = GrabController(scene, camera, config.interaction)

    print("Starting webcam debug mode...")
    print("Press 'q' to quit")
    print("-" * 40)

    if not tracker.start():
        print("ERROR: Could not open camera")
        return 1

    last_state = controller.state
    try:
        while True:
            hands = tracker.get_frame()
            if hands is not None:
                gesture = engine.update(hands)
            else:
                gesture = engine.last_gesture
            state = controller.update(gesture)

            frame = tracker.get_frame_with_landmarks(hands)

            if frame is not None:
                draw_scene(frame, camera, scene, controller)

                state_text = f"State: {state.value}"
                cv2.putText(
                    frame, state_text, (10, 30),
                    cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 255, 0), 2
                )

                info_lines = [
                    f"Click: {gesture.is_clicking} ({gesture.click_mode.value})",
                    f"Strength: {gesture.click_strength:.2f}",
                    f"Pinch dist: {gesture.pinch_distance:.3f}",
                    f"Position: ({gesture.x:.2f}, {gesture.y:.2f}, {gesture.z:.2f})",
                    f"Depth: {gesture.hand_depth:.2f}  Scale: {gesture.hand_scale:.2f}",
                ]
                for i, line in enumerate(info_lines):
                    cv2.putText(
                        frame, line, (10, 60 + i * 25),
                        cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1
                    )

                # Pointer, already in mirrored screen space
                fh, fw = frame.shape[:2]
                cv2.circle(frame, (int(gesture.x * fw), int(gesture.y * fh)), 8,
                           (0, 0, 255) if gesture.is_clicking else (255, 255, 255), -1)

                if state != last_state:
                    print(f"[{tracker.frame_count:5d}] {state.value}")
                    last_state = state

                cv2.imshow("HandGrab Debug", frame)

            # Check for quit
            if cv2.waitKey(1) & 0xFF == ord('q'):
                break

    finally:
        tracker.stop()
        cv2.destroyAllWindows()

    return 0


def run_calibration(config, store):
    """Collect click samples from the webcam and save personal thresholds."""
    import cv2
    from src.vision import ClickGestureEngine
    from src.vision.hand_tracker import HandTracker
    from src.interaction import ClickCalibrator, load_click_calibration, load_click_settings

    settings = load_click_settings(store)
    tracker = HandTracker(config)
    engine = ClickGestureEngine(config.gestures, settings, load_click_calibration(store))
    calibrator = ClickCalibrator(store, settings, config.gestures)

    print("Starting click calibration...")
    print(f"  Mode: {settings.click_mode.value}")
    print("Hold your click gesture until the counter fills. Press 'q' to abort.")
    print("-" * 40)

    if not tracker.start():
        print("ERROR: Could not open camera")
        return 1

    calibrator.start(settings.click_mode)
    try:
        while not calibrator.is_complete:
            hands = tracker.get_frame()
            if hands is None:
                continue
            gesture = engine.update(hands)
            calibrator.observe(hands, gesture)

            frame = tracker.get_frame_with_landmarks(hands)
            if frame is not None:
                text = f"{calibrator.step.value}: {len(calibrator.samples)} samples"
                cv2.putText(frame, text, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 1, (0, 255, 0), 2)
                cv2.imshow("HandGrab Calibration", frame)

            if cv2.waitKey(1) & 0xFF == ord('q'):
                calibrator.cancel()
                print("Calibration aborted")
                return 1
    finally:
        tracker.stop()
        cv2.destroyAllWindows()

    calibration = calibrator.finish()
    print(f"Saved pinch threshold {calibration.pinch_threshold:.3f}, "
          f"fist threshold {calibration.fist_threshold}")
    return 0


def run_worker_mode(config, store):
    """Run HandGrab headless: tracking and grabbing on a worker thread."""
    import signal
    import atexit
    from PyQt5.QtCore import QCoreApplication, QThread, Qt
    from src.vision.worker import InteractionWorker
    from src.interaction import load_click_calibration, load_click_settings

    app = QCoreApplication(sys.argv)

    camera, scene = build_demo_scene(config)

    # Setup background worker and thread
    thread = QThread()
    worker = InteractionWorker(
        config, scene, camera,
        settings=load_click_settings(store),
        calibration=load_click_calibration(store),
    )
    worker.moveToThread(thread)

    def cleanup():
        """Ensure camera is released on exit."""
        print("\nCleaning up camera resources...")
        worker.stop_process()
        thread.quit()
        thread.wait(2000)
        print("Cleanup complete.")

    # Register cleanup for various exit scenarios
    atexit.register(cleanup)

    def signal_handler(signum, frame):
        """Handle Ctrl+C and kill signals gracefully."""
        print(f"\nReceived signal {signum}, shutting down...")
        app.quit()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    def handle_state(state):
        """Report interaction state changes from the worker."""
        controller = worker.controller
        target = controller.grabbed_object or controller.hovered_object
        suffix = f" ({target.name})" if target is not None else ""
        print(f"State: {state.value}{suffix}")

    # Connect signals (Use QueuedConnection so handlers run in the main thread)
    thread.started.connect(worker.start_process)
    worker.state_changed.connect(handle_state, Qt.QueuedConnection)
    worker.error.connect(lambda msg: print(f"WORKER ERROR: {msg}"), Qt.QueuedConnection)

    # Start thread
    thread.start()

    try:
        result = app.exec_()
    finally:
        cleanup()
        atexit.unregister(cleanup)  # Avoid double cleanup

    return result


def main():
    """Main entry point."""
    args = parse_args()

    level = args.log_level or ("DEBUG" if args.debug else "INFO")
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Load config
    from src.vision import ClickMode, load_config
    from src.interaction import SettingsStore
    from src.interaction.settings import load_max_hands, save_click_mode, save_max_hands
    config = load_config(args.config)

    # Apply CLI overrides
    if args.settings:
        config.settings.path = str(args.settings)
    store = SettingsStore(config.settings.path)
    if args.max_hands:
        save_max_hands(store, args.max_hands)
    if args.click_mode:
        save_click_mode(store, ClickMode(args.click_mode))

    print("HandGrab starting...")
    print(f"  Settings: {store.path}")
    print(f"  Max hands: {load_max_hands(store)}")
    print(f"  Debug: {args.debug}")
    print()

    # Run appropriate mode
    if args.calibrate:
        return run_calibration(config, store)
    if args.debug:
        return run_webcam_debug(config, store)
    return run_worker_mode(config, store)


if __name__ == "__main__":
    sys.exit(main())
