"""1D discontinuous Galerkin solver for scalar conservation laws."""

import numpy as np
import pytest

from felab.dg.basis import LegendreBasis
from felab.dg.limiter import limit, minmod
from felab.dg.main import main, run_convergence_study
from felab.dg.parameters import Parameter
from felab.dg.pde import Burgers, LinearAdvection, make_pde, numerical_flux
from felab.dg.problem import ScalarProblem
from felab.dg.test_data import InitialCondition, Solution, get_test_case


def make_param(tmp_path, **kwargs):
    defaults = dict(
        degree=1,
        n_cells=20,
        test_case="smooth",
        pde="linear",
        cfl=0.2,
        final_time=0.5,
        flux="upwind",
        output_dir=str(tmp_path),
        xmin=-1.0,
        xmax=1.0,
    )
    defaults.update(kwargs)
    return Parameter(**defaults)


def make_problem(param):
    test_case = get_test_case(param.test_case)
    pde = make_pde(param.pde, param.speed)
    return ScalarProblem(
        param,
        InitialCondition(test_case),
        Solution(test_case, param.final_time, pde),
        verbose=False,
    )


class TestLegendreBasis:
    """Modal basis on [-1,1]."""

    def test_face_values(self):
        basis = LegendreBasis(3)
        assert np.allclose(basis.values(1.0)[0], basis.right)
        assert np.allclose(basis.values(-1.0)[0], basis.left)

    def test_mass_is_orthogonality(self):
        basis = LegendreBasis(3)
        xi, w = np.polynomial.legendre.leggauss(5)
        phi = basis.values(xi)
        mass = 0.5 * 0.4 * phi.T @ (phi * w[:, None])
        assert np.allclose(mass, np.diag(basis.mass(0.4)))

    def test_derivatives(self):
        basis = LegendreBasis(2)
        xi = np.array([-0.5, 0.25])
        # P1' = 1, P2' = 3 xi
        assert np.allclose(basis.derivatives(xi), [[0.0, 1.0, -1.5], [0.0, 1.0, 0.75]])


class TestNumericalFluxes:
    """Two-point fluxes for linear advection and Burgers."""

    @pytest.mark.parametrize("name", ["central", "upwind", "rusanov", "godunov", "roe"])
    def test_consistency(self, name):
        pde = LinearAdvection(0.7)
        u = np.array([-1.0, 0.3, 2.0])
        assert np.allclose(numerical_flux(name)(pde, u, u), pde.flux(u))

    @pytest.mark.parametrize("name", ["rusanov", "godunov", "roe"])
    def test_consistency_burgers(self, name):
        u = np.array([-1.0, 0.3, 2.0])
        assert np.allclose(numerical_flux(name)(Burgers(), u, u), 0.5 * u * u)

    def test_upwind_picks_side(self):
        ul, ur = np.array([1.0]), np.array([3.0])
        assert np.allclose(numerical_flux("upwind")(LinearAdvection(2.0), ul, ur), 2.0)
        assert np.allclose(numerical_flux("upwind")(LinearAdvection(-2.0), ul, ur), -6.0)

    def test_upwind_rejects_burgers(self):
        with pytest.raises(ValueError):
            numerical_flux("upwind")(Burgers(), np.zeros(1), np.zeros(1))

    def test_godunov_burgers(self):
        """Shock keeps f(ul) = f(ur), transonic rarefaction gives f(0)."""
        flux = numerical_flux("godunov")
        pde = Burgers()
        assert np.allclose(flux(pde, np.array([1.0]), np.array([-1.0])), 0.5)
        assert np.allclose(flux(pde, np.array([-1.0]), np.array([1.0])), 0.0)
        assert np.allclose(flux(pde, np.array([1.0]), np.array([2.0])), 0.5)

    def test_unknown_flux(self):
        with pytest.raises(ValueError):
            numerical_flux("hllc")


class TestLimiter:
    """TVD and TVB minmod limiter."""

    def test_minmod(self):
        a = np.array([1.0, -1.0, 2.0])
        b = np.array([2.0, -0.5, -1.0])
        c = np.array([3.0, -2.0, 1.0])
        assert np.allclose(minmod(a, b, c), [1.0, -0.5, 0.0])

    def test_linear_data_untouched(self):
        h = 0.1
        centres = np.arange(10) * h
        u = np.column_stack([centres, np.full(10, 0.5 * h)])
        limited = limit(u, h)
        # the periodic wrap creates a jump at both ends
        assert np.allclose(limited[1:-1], u[1:-1])

    def test_extremum_flattened(self):
        u = np.array([[0.0, 0.0, 0.0], [1.0, 0.3, 0.1], [0.0, 0.0, 0.0], [0.0, 0.0, 0.0]])
        limited = limit(u, 0.1)
        assert np.allclose(limited[1], [1.0, 0.0, 0.0])
        assert np.allclose(limited[:, 0], u[:, 0])

    def test_tvb_keeps_small_extremum(self):
        u = np.array([[0.0, 0.0], [1e-3, 1e-3], [0.0, 0.0], [0.0, 0.0]])
        assert np.allclose(limit(u, 0.1, tvb_parameter=0.0)[1, 1], 0.0)
        assert np.allclose(limit(u, 0.1, tvb_parameter=10.0)[1, 1], 1e-3)

    def test_tvb_slope_of_limited_cell(self):
        """A limited cell keeps a slope below M h^2 and loses higher modes."""
        u = np.array([[0.0, 0.0, 0.0], [1.0, 0.05, 0.5], [0.0, 0.0, 0.0], [0.0, 0.0, 0.0]])
        assert np.allclose(limit(u, 0.1, tvb_parameter=10.0)[1], [1.0, 0.05, 0.0])
        assert np.allclose(limit(u, 0.1, tvb_parameter=0.0)[1], [1.0, 0.0, 0.0])


class TestExactSolutions:
    """Initial conditions and exact solutions of the test cases."""

    def test_initial_condition_periodic(self):
        ic = InitialCondition(get_test_case("smooth"))
        x = np.array([-0.3, 0.4])
        assert np.allclose(ic(x + 2.0), ic(x))

    def test_linear_shift(self):
        test_case = get_test_case("square")
        exact = Solution(test_case, 0.5, LinearAdvection(1.0))
        assert np.allclose(exact.value(np.array([0.6, 0.0])), [1.0, 0.0])

    def test_burgers_characteristics(self):
        test_case = get_test_case("smooth")
        t = 0.25
        exact = Solution(test_case, t, Burgers())
        x = np.linspace(-1.0, 1.0, 17)
        u = exact.value(x)
        u0 = InitialCondition(test_case)
        assert np.allclose(u, u0(x - u * t), atol=1e-12)

    def test_burgers_after_shock_unavailable(self):
        exact = Solution(get_test_case("smooth"), 0.5, Burgers())
        assert not exact.available
        assert exact.value(np.zeros(3)) is None
        assert not Solution(get_test_case("square"), 0.1, Burgers()).available

    def test_unknown_test_case(self):
        with pytest.raises(ValueError):
            get_test_case("sod")


class Quadratic:
    """u0 = 1 + x - 2x^2"""

    def value(self, x):
        return 1.0 + x - 2.0 * x**2


class TestScalarProblem:
    """Time stepping, error and conservation."""

    def test_projection_of_polynomial(self, tmp_path):
        problem = make_problem(make_param(tmp_path, degree=2, n_cells=8))
        problem.make_grid_and_dofs()
        problem.initial_condition = Quadratic()
        problem.initialize()
        x, u = problem.sample(5)
        assert np.allclose(u, 1.0 + x - 2.0 * x**2)

    def test_linear_advection_converges(self, tmp_path):
        errors = []
        for n_cells in (10, 20, 40):
            problem = make_problem(make_param(tmp_path, n_cells=n_cells))
            errors.append(problem.run())
        rates = np.log2(np.array(errors[:-1]) / np.array(errors[1:]))
        assert rates[-1] > 1.7

    def test_burgers_smooth_converges(self, tmp_path):
        errors = []
        for n_cells in (40, 80):
            param = make_param(
                tmp_path, n_cells=n_cells, pde="burgers", flux="rusanov", final_time=0.2
            )
            errors.append(make_problem(param).run())
        assert np.log2(errors[0] / errors[1]) > 1.4

    @pytest.mark.parametrize("scheme", ["euler", "ssprk2", "ssprk3"])
    def test_mass_conserved_with_limiter(self, tmp_path, scheme):
        param = make_param(
            tmp_path,
            n_cells=50,
            test_case="square",
            pde="burgers",
            flux="godunov",
            limiter="tvd",
            time_scheme=scheme,
            cfl=0.1,
            final_time=0.3,
        )
        problem = make_problem(param)
        problem.make_grid_and_dofs()
        problem.initialize()
        mass0 = problem.total_mass()
        problem.solve()
        assert np.isclose(problem.time, 0.3)
        assert abs(problem.total_mass() - mass0) < 1e-12

    def test_no_error_after_shock(self, tmp_path):
        param = make_param(tmp_path, pde="burgers", flux="godunov", final_time=0.5, limiter="tvd")
        assert make_problem(param).run() is None

    def test_output_files(self, tmp_path):
        param = make_param(tmp_path, n_cells=10, final_time=0.1, output_step=2)
        problem = make_problem(param)
        problem.run()
        files = sorted(tmp_path.glob("sol-*.dat"))
        assert files[0].name == "sol-0000.dat"
        assert files[-1].name == f"sol-{problem.n_steps:04d}.dat"
        data = np.loadtxt(files[-1])
        assert data.shape == (10 * 3, 3)

    def test_convergence_study_table(self, tmp_path):
        param = make_param(tmp_path, n_cells=10, refine_levels=3)
        table = run_convergence_study(param, verbose=False)
        assert table.columns["cells"] == [10, 20, 40]
        assert table.columns["dofs"] == [20, 40, 80]
        assert table.columns["L2 rate log2"][-1] > 1.7

    @pytest.mark.parametrize("degree, cfl", [(2, 0.1), (3, 0.05)])
    def test_higher_degree_rates(self, tmp_path, degree, cfl):
        """Upwind DG with Q_k converges at about k+1."""
        param = make_param(tmp_path, degree=degree, n_cells=10, refine_levels=3, cfl=cfl)
        table = run_convergence_study(param, verbose=False)
        assert table.columns["dofs"] == [10 * (degree + 1), 20 * (degree + 1), 40 * (degree + 1)]
        assert table.columns["L2 rate log2"][-1] > degree + 0.7

    def test_negative_speed(self, tmp_path):
        errors = []
        for n_cells in (10, 20, 40):
            problem = make_problem(make_param(tmp_path, n_cells=n_cells, speed=-1.0))
            errors.append(problem.run())
        rates = np.log2(np.array(errors[:-1]) / np.array(errors[1:]))
        assert rates[-1] > 1.7

    def test_negative_speed_exact_solution_moves_left(self, tmp_path):
        param = make_param(tmp_path, n_cells=40, speed=-1.0, final_time=0.25)
        problem = make_problem(param)
        problem.run()
        x, u = problem.sample(3)
        assert np.max(np.abs(u - (0.5 + np.sin(np.pi * (x + 0.25))))) < 0.02

    @pytest.mark.parametrize(
        "flux, limiter, tvb_parameter",
        [("roe", "none", 0.0), ("central", "none", 0.0), ("rusanov", "tvb", 10.0)],
    )
    def test_runs_to_completion(self, tmp_path, flux, limiter, tvb_parameter):
        param = make_param(
            tmp_path,
            n_cells=40,
            flux=flux,
            limiter=limiter,
            tvb_parameter=tvb_parameter,
            cfl=0.1,
        )
        problem = make_problem(param)
        error = problem.run()
        assert np.isclose(problem.time, 0.5)
        assert np.all(np.isfinite(problem.solution))
        assert error < 0.1

    def test_burgers_roe_tvb_square(self, tmp_path):
        param = make_param(
            tmp_path,
            n_cells=50,
            test_case="square",
            pde="burgers",
            flux="roe",
            limiter="tvb",
            tvb_parameter=10.0,
            cfl=0.1,
            final_time=0.3,
        )
        problem = make_problem(param)
        problem.make_grid_and_dofs()
        problem.initialize()
        mass0 = problem.total_mass()
        problem.solve()
        assert np.all(np.isfinite(problem.solution))
        assert abs(problem.total_mass() - mass0) < 1e-12

    def test_convergence_study_needs_exact_solution(self, tmp_path):
        param = make_param(
            tmp_path,
            test_case="square",
            pde="burgers",
            flux="godunov",
            limiter="tvd",
            refine_levels=2,
        )
        with pytest.raises(ValueError, match="No exact solution"):
            run_convergence_study(param, verbose=False)


class TestMain:
    """Command line driver."""

    def test_without_input_lists_parameters(self, capsys):
        assert main([]) == 0
        out = capsys.readouterr().out
        assert "Specify input parameter file" in out
        assert "set numerical flux = rusanov" in out

    def test_convergence_run(self, tmp_path, capsys):
        prm = tmp_path / "input.prm"
        prm.write_text(
            "set ncells = 10\n"
            "set final time = 0.2\n"
            "set numerical flux = upwind\n"
            f"set output directory = {tmp_path}\n"
            "set refine levels = 2\n"
        )
        assert main([str(prm), "--quiet"]) == 0
        assert "L2 rate log2" in capsys.readouterr().out
        assert (tmp_path / "error.tex").exists()
        assert (tmp_path / "config.json").exists()

    def test_single_run_with_plot(self, tmp_path):
        prm = tmp_path / "input.prm"
        prm.write_text(
            "set ncells = 10\n"
            "set final time = 0.1\n"
            f"set output directory = {tmp_path}\n"
        )
        assert main([str(prm), "--quiet", "--plot"]) == 0
        assert (tmp_path / "solution.png").exists()
        assert list(tmp_path.glob("sol-*.dat"))
