from cosmopolint.runner import main

raise SystemExit(main())
