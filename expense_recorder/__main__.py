from expense_recorder.cli import main

raise SystemExit(main())
