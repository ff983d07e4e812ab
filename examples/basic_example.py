"""Basic example of driving the engine the way a render loop would."""

from galaxy_engine import GalaxyConfig, SimulationController
from galaxy_engine.physics import DirectSummation


def main():
    """Run two small disks toward each other and print energy as they go."""
    galaxies = [
        GalaxyConfig(count=800, total_mass=1e10, name="milky_way"),
        GalaxyConfig(
            count=600,
            center=(1500.0, 600.0, 0.0),
            bulk_velocity=(-0.01, -0.004, 0.0),
            inclination_deg=77.0,
            total_mass=1.2e10,
            radius=600.0,
            profile="exponential",
            name="andromeda",
        ),
    ]

    controller = SimulationController(evaluator=DirectSummation(workers=4), dt=100.0)
    controller.initialize(galaxies, seed=42)

    # A renderer would keep this view and upload it every frame
    buffer = controller.get_positions_buffer()

    print("Running simulation...")
    print(f"Initial energy: {controller.get_energy():.6e}")

    controller.start()
    for frame in range(500):
        controller.tick()
        if frame % 100 == 0:
            print(f"Frame {frame}: t={controller.get_sim_time():.0f}, "
                  f"first star at ({buffer[0]:.1f}, {buffer[1]:.1f}, {buffer[2]:.1f}), "
                  f"energy={controller.get_energy():.6e}")
    controller.pause()

    print(f"Final energy: {controller.get_energy():.6e}")
    print("Simulation complete!")


if __name__ == "__main__":
    main()
