#!/usr/bin/env python3
"""
Live threshold tuning - shows both exercise distances in real-time.
Useful for picking exercise.thumb_tap.threshold and exercise.fist.threshold
for a particular camera distance and lighting.
"""

import sys
import argparse
from pathlib import Path

import cv2

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from modules.utils.config import Config
from modules.capture.camera_manager import CameraManager
from modules.detection.hand_detector import HandDetector, HandDetectorConfig
from modules.detection.landmark_extractor import LandmarkExtractor
from modules.recognition.rep_counter import create_counter
from core.types import ExerciseType

GREEN = (0, 255, 0)
GREY = (200, 200, 200)
RED = (0, 0, 255)


def main():
    parser = argparse.ArgumentParser(description="Live exercise threshold tuning")
    parser.add_argument("--config", type=str, default=None, help="Path to config.yaml")
    parser.add_argument("--camera", type=int, default=None, help="Camera device ID")
    args = parser.parse_args()

    config = Config().load(args.config)
    if args.camera is not None:
        config.set("camera.device_id", args.camera)

    print("Threshold Tuning")
    print("=" * 50)
    print("Distances turn green when the gesture would register")
    print("Press 'q' to quit")
    print("=" * 50)

    counters = [create_counter(e, config.exercise) for e in ExerciseType]
    camera = CameraManager(config.camera)
    detector = HandDetector(HandDetectorConfig.from_dict(config.detector))
    extractor = LandmarkExtractor()

    if not camera.open():
        print("Could not open camera {}".format(config.get("camera.device_id")))
        return 1
    if not detector.start():
        print("Hand detector failed to start")
        camera.stop()
        return 1

    lowest = {c.exercise: None for c in counters}

    try:
        while True:
            _, frame, ts = camera.read()
            if frame is None:
                continue

            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            landmarks = extractor.primary_hand(detector.detect(rgb, ts))

            if landmarks is None:
                cv2.putText(frame, "No hand detected", (20, 50),
                            cv2.FONT_HERSHEY_SIMPLEX, 1.0, RED, 2)
            else:
                detector.draw_landmarks(frame, landmarks)
                for row, counter in enumerate(counters):
                    metric = counter.measure(landmarks)
                    if metric is None:
                        continue
                    best = lowest[counter.exercise]
                    lowest[counter.exercise] = metric if best is None else min(best, metric)

                    text = "{}: {:.3f} (threshold {:.3f}, min {:.3f})".format(
                        counter.exercise.display_name, metric, counter.threshold,
                        lowest[counter.exercise])
                    color = GREEN if metric < counter.threshold else GREY
                    cv2.putText(frame, text, (20, 50 + row * 40),
                                cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2)

            cv2.imshow("Threshold Tuning", frame)

            if cv2.waitKey(1) & 0xFF == ord('q'):
                break

    finally:
        camera.stop()
        detector.close()
        cv2.destroyAllWindows()

    for exercise, value in lowest.items():
        if value is not None:
            print("{:<15} lowest distance seen: {:.3f}".format(exercise.display_name, value))
    return 0


if __name__ == "__main__":
    sys.exit(main())
